"""
Fatal error types for the merge pipeline.

Soft-skip conditions (a missing sales sheet, a row without an ASIN, an
unparseable listing date) are absorbed where they happen and never raise.
Everything here propagates unchanged to the caller (app.py), which is
responsible for showing the message to the user.
"""


class ListingMergeError(Exception):
    """Base class for all fatal merge-pipeline errors."""


class MissingRequiredFileError(ListingMergeError):
    """The product file or the keywords file was not among the uploads."""

    def __init__(
        self,
        message: str,
        product_name: str | None = None,
        keywords_name: str | None = None,
        sales_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.product_name = product_name
        self.keywords_name = keywords_name
        self.sales_count = sales_count


class SheetNotFoundError(ListingMergeError):
    """A workbook has no sheet to read and no fallback was allowed."""

    def __init__(self, message: str, file_name: str = "") -> None:
        super().__init__(message)
        self.file_name = file_name


class DecodeError(ListingMergeError):
    """The file bytes could not be parsed as an .xlsx workbook."""

    def __init__(self, message: str, file_name: str = "") -> None:
        super().__init__(message)
        self.file_name = file_name
