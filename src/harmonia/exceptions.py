"""Exceptions and warnings specific to harmonia."""

# ------------------------------------------------------------------------------
#                                   Exceptions
# ------------------------------------------------------------------------------


class HarmoniaError(Exception):
    """Base class for all errors raised by harmonia."""

    pass


class InvalidArgumentError(HarmoniaError, ValueError):
    """
    Raised when an argument has an invalid shape, dimension, data type or unit.
    Detected before any data is modified.
    """

    pass


class InconsistentProductError(InvalidArgumentError):
    """
    Raised when a product and a collocation result (or a collocated product)
    do not describe the same set of samples.
    """

    pass


class UnitError(InvalidArgumentError):
    """Raised when a unit cannot be interpreted or converted."""

    def __init__(self, from_unit, to_unit, msg=None):
        super(UnitError, self).__init__(msg)
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.msg = msg

    def __str__(self):
        result = f"cannot convert from '{self.from_unit}' to '{self.to_unit}'"

        if self.msg:
            result += f" ({self.msg})"

        return result


class UpstreamError(HarmoniaError):
    """
    Raised when a collaborator operation (derivation, regridding, append)
    fails. The original error, if any, is chained as the cause.
    """

    pass


class DerivationError(UpstreamError, KeyError):
    """Raised when a variable can neither be found nor derived."""

    def __str__(self):
        # KeyError quotes its argument by default, which garbles messages
        return str(self.args[0]) if self.args else ""


class RegriddingError(UpstreamError):
    """Raised when a product cannot be regridded onto a new vertical axis."""

    pass


class AppendError(UpstreamError):
    """Raised when two products cannot be concatenated."""

    pass


# ------------------------------------------------------------------------------
#                                   Warnings
# ------------------------------------------------------------------------------


class ConfigWarning(UserWarning):
    """Used when encountering nonfatal configuration issues."""

    pass
