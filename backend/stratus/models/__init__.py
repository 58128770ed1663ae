# Models package init: importing here registers every table with Base.metadata
from stratus.models.user import User, DEFAULT_PREFERENCES
from stratus.models.search_history import SearchHistory

__all__ = ["User", "SearchHistory", "DEFAULT_PREFERENCES"]
