"""
docpipe - Custom Exceptions Module

This module defines the exception classes raised inside the pipeline core.
Operations convert them into typed outcomes at their boundary, so none of
these reach a caller of ``run_job``.
"""


class DocPipeError(Exception):
    """Base exception for all docpipe errors.

    All custom exceptions inherit from this class to allow catching any
    docpipe-specific error.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class InvalidOptionsError(DocPipeError):
    """Raised when job options are missing or contradictory."""

    def __init__(self, reason: str, option: str | None = None) -> None:
        """Initialize the exception.

        Args:
            reason: Why the options were rejected
            option: Optional name of the offending option
        """
        self.option = option
        self.reason = reason
        details = f"option={option}" if option else None
        super().__init__(reason, details=details)


class InvalidFileTypeError(DocPipeError):
    """Raised when an input file is not of an accepted type."""

    def __init__(self, filename: str, expected: str, received: str | None = None) -> None:
        """Initialize the exception.

        Args:
            filename: Name of the rejected file
            expected: Human-readable description of accepted types
            received: Optional MIME type that was received
        """
        self.filename = filename
        self.expected = expected
        self.received = received
        super().__init__(
            f"Invalid file type: {filename}",
            details=f"expected {expected}, received {received or 'unknown'}",
        )


class InvalidPageRangeError(DocPipeError):
    """Raised when a page selection does not fit the document.

    ``position`` is the 1-based index of the offending entry in the caller's
    list and ``bound`` names the violated constraint: ``"start"``,
    ``"order"`` or ``"end"`` for ranges, ``"page"`` for single numbers.
    """

    def __init__(
        self,
        reason: str,
        position: int | None = None,
        bound: str | None = None,
        total_pages: int | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            reason: Human-readable description of the violation
            position: Optional 1-based position of the bad entry
            bound: Optional name of the violated bound
            total_pages: Optional page count of the document
        """
        self.position = position
        self.bound = bound
        self.total_pages = total_pages
        self.reason = reason

        msg = f"Range {position}: {reason}" if position is not None else reason
        details = f"The PDF has {total_pages} pages." if total_pages is not None else None
        super().__init__(msg, details=details)


class NoValidPagesError(InvalidPageRangeError):
    """Raised when a selection resolves to no pages at all."""

    def __init__(self, total_pages: int) -> None:
        """Initialize the exception.

        Args:
            total_pages: Page count of the document
        """
        super().__init__("No valid pages selected.", total_pages=total_pages)


class ProcessingCancelledError(DocPipeError):
    """Raised at a cancellation checkpoint once cancellation was requested."""

    def __init__(self, stage: str | None = None) -> None:
        """Initialize the exception.

        Args:
            stage: Optional name of the stage about to start
        """
        self.stage = stage
        details = f"stage={stage}" if stage else None
        super().__init__("Processing was cancelled.", details=details)


class EncryptedDocumentError(DocPipeError):
    """Raised when a PDF is encrypted and cannot be processed."""

    def __init__(self, filename: str) -> None:
        """Initialize the exception.

        Args:
            filename: Name of the encrypted file
        """
        self.filename = filename
        super().__init__(
            "The PDF file is encrypted.",
            details=f"{filename}: decrypt the file before processing",
        )


class ProcessingFailedError(DocPipeError):
    """Raised when a collaborator fails while a unit of work is processed."""

    def __init__(self, reason: str, item: str | None = None) -> None:
        """Initialize the exception.

        Args:
            reason: What went wrong
            item: Optional description of the page or file being processed
        """
        self.reason = reason
        self.item = item
        msg = f"Failed to process {item}." if item else "Processing failed."
        super().__init__(msg, details=reason)


# Exception hierarchy summary:
# DocPipeError (base)
# ├── InvalidOptionsError
# ├── InvalidFileTypeError
# ├── InvalidPageRangeError
# │   └── NoValidPagesError
# ├── ProcessingCancelledError
# ├── EncryptedDocumentError
# └── ProcessingFailedError
