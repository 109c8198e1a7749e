from shared.models.pagination import ListWindow, PaginatedResponse, SortDirection

__all__ = ["ListWindow", "PaginatedResponse", "SortDirection"]
