class SheetError(Exception):
    """Base error for the remote spreadsheet client."""


class SheetReadError(SheetError):
    """The query endpoint could not be reached or returned an unparseable payload."""


class SheetWriteError(SheetError):
    """The script endpoint rejected the mutation or could not be reached."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
