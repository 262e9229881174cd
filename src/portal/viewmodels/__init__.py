from .entity_table_viewmodel import EntityTableViewModel, TableSummary

__all__ = ["EntityTableViewModel", "TableSummary"]
