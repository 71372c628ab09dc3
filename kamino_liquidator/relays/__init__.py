from .jito import JITO_TIP_ACCOUNTS, JitoRelay, select_tip_account

__all__ = ["JITO_TIP_ACCOUNTS", "JitoRelay", "select_tip_account"]
