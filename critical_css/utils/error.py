"""Error utility for Critical CSS."""

class CriticalCssError(Exception):
    """Base exception for Critical CSS."""
    pass

class ConfigurationError(CriticalCssError):
    """Raised when configuration is invalid."""
    pass

class CssParseError(CriticalCssError):
    """Raised when the selector matcher cannot parse the HTML or CSS."""
    pass

class FileOperationError(CriticalCssError):
    """Raised when file operations fail."""
    pass

class StylesheetNotFoundError(FileOperationError):
    """Raised when a stylesheet cannot be read."""

    def __init__(self, path: str, reason: str = ''):
        self.path = path
        message = f"Stylesheet not found: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)

class StylesheetWriteError(FileOperationError):
    """Raised when a pruned stylesheet cannot be written back."""

    def __init__(self, path: str, reason: str = ''):
        self.path = path
        message = f"Failed to write stylesheet {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

# Exported exceptions
__all__ = [
    'CriticalCssError',
    'ConfigurationError',
    'CssParseError',
    'FileOperationError',
    'StylesheetNotFoundError',
    'StylesheetWriteError',
]
