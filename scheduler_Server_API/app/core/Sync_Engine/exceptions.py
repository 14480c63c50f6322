# exceptions.py
# Description: Exception hierarchy for the scheduler change-reconciliation engine
#
"""
Sync Engine Exception Hierarchy
===============================

Exception Categories:
- SyncEngineError: Base exception for all engine errors
- SchemaLookupError: The store could not report a collection's field set
- StoreError: A create / update / delete was rejected by the store
- RowNotFoundError: The targeted row does not exist
- InvalidChangeSetError: The incoming change set is malformed
- UnknownFieldError: A record carries a field outside the schema (strict policy only)
- UnresolvedReferenceError: A phantom reference could not be resolved (strict policy only)
"""

from typing import Optional, Any, Dict


class SyncEngineError(Exception):
    """
    Base exception for all sync engine errors.

    Attributes:
        collection: The logical collection being processed when the error occurred
        context: Additional context about the error (ids, fields, ...)
        original_error: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.collection = collection
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base_message = super().__str__()
        parts = [base_message]

        if self.collection:
            parts.append(f"Collection: {self.collection}")

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.original_error:
            parts.append(f"Caused by: {type(self.original_error).__name__}: {self.original_error}")

        return " | ".join(parts)

    @property
    def message(self) -> str:
        """The bare message, without collection or context decoration."""
        return super().__str__()

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "collection": self.collection,
            "context": self.context,
            "original_error": str(self.original_error) if self.original_error else None
        }


class SchemaLookupError(SyncEngineError):
    """Raised when the store cannot list the columns of a table."""

    def __init__(self, message: str, table_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if table_id:
            context['table_id'] = table_id
        super().__init__(message, context=context, **kwargs)


class StoreError(SyncEngineError):
    """
    Raised when the row store rejects a single-row operation.

    Covers invalid references, constraint violations, transport failures
    towards a remote store and anything else the backend reports.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table_id: Optional[str] = None,
        row_id: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if operation:
            context['operation'] = operation
        if table_id:
            context['table_id'] = table_id
        if row_id is not None:
            context['row_id'] = str(row_id)
        super().__init__(message, context=context, **kwargs)
        self.operation = operation
        self.table_id = table_id
        self.row_id = row_id


class RowNotFoundError(StoreError):
    """Raised when an update or delete targets a row that does not exist."""
    pass


class InvalidChangeSetError(SyncEngineError):
    """Raised when a delta entry lacks its phantom id or persistent id."""
    pass


class UnknownFieldError(SyncEngineError):
    """Raised by the strict field policy for fields outside the table schema."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if field_name:
            context['field'] = field_name
        super().__init__(message, context=context, **kwargs)
        self.field_name = field_name


class UnresolvedReferenceError(SyncEngineError):
    """Raised by the strict reference policy for phantom values with no mapping."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Optional[Any] = None, **kwargs):
        context = kwargs.pop('context', {})
        if field_name:
            context['field'] = field_name
        if value is not None:
            context['value'] = str(value)
        super().__init__(message, context=context, **kwargs)
        self.field_name = field_name
        self.value = value

#
# End of exceptions.py
#######################################################################################################################
