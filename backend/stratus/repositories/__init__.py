# Repositories package init: storage collaborators behind the services
from stratus.repositories.user_repository import SqlAlchemyUserRepository, UserRepository

__all__ = ["UserRepository", "SqlAlchemyUserRepository"]
