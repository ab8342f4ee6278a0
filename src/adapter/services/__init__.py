from .unit_of_work import SqlAlchemyUnitOfWork
from .user_directory import SqlAlchemyUserDirectory

__all__ = [
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyUserDirectory",
]
