from .unit_of_work import UnitOfWork
from .user_directory import UserDirectory

__all__ = [
    "UnitOfWork",
    "UserDirectory",
]
