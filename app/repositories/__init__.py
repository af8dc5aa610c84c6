from app.repositories.account import account_repo
from app.repositories.ledger import ledger_repo

__all__ = ["account_repo", "ledger_repo"]
