"""hitch errors - everything the CLI reports as ERROR and exits 1 on."""


class HitchError(Exception):
    """Base class for all errors raised while building a request."""


class ConfigError(HitchError):
    pass


class ModeConflictError(HitchError):
    def __init__(self):
        super().__init__("--form and --json are mutually exclusive.")


class ItemParseError(HitchError):
    """A request item token could not be turned into a RequestItem.

    `fragment` holds the offending part of the token (the whole token,
    the operator or the file path, depending on the failure).
    """

    message = "could not parse request item"

    def __init__(self, fragment: str):
        self.fragment = fragment
        super().__init__(f"{self.message} {fragment!r}")


class ParseError(ItemParseError):
    message = "could not parse request item"


class VariantParseError(ItemParseError):
    message = "unknown request item operator"


class MissingFileInputError(ItemParseError):
    message = "missing file path in request item"


class ItemIOError(ItemParseError):
    message = "could not read file"


class HeaderValidationError(HitchError):
    pass


class UriError(HitchError):
    pass


class MethodError(HitchError):
    pass


class UnsupportedItemError(HitchError):
    pass
