from .app import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS, main

__all__ = [
    "EXIT_FATAL",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_SUCCESS",
    "main",
]
