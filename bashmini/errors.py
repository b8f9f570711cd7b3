class MinifyError(Exception):
    """Base class for every failure that aborts a minification run."""


class ConfigError(MinifyError):
    """Invalid option value, e.g. an ignore pattern that is not a valid regex."""


class BundleError(MinifyError):
    """An import target was resolved but could not be read."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class BundleDepthError(BundleError):
    """Import nesting went past the recursion limit, usually a cycle."""
