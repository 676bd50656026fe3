"""Utility functions for afssync."""

# =============================================================================
# Constants for sync operations
# =============================================================================

# Global cap on concurrently executing copy/delete operations
DEFAULT_MAX_CONCURRENCY: int = 32

# Lifetime of the read-only SAS token handed to the destination for a copy
DEFAULT_SAS_EXPIRY_MINUTES: int = 30


# =============================================================================
# Path utilities
# =============================================================================


def combine_path(left: str, right: str) -> str:
    """Join two share-relative path fragments with a single forward slash.

    Args:
        left: Parent path (may be empty for the share root)
        right: Child name or path

    Returns:
        Combined path without a leading slash when left is empty

    Examples:
        >>> combine_path("", "a.txt")
        'a.txt'
        >>> combine_path("docs/", "/a.txt")
        'docs/a.txt'
    """
    if not left:
        return right
    return f"{left.rstrip('/')}/{right.lstrip('/')}"
