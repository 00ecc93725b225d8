from importlib.metadata import PackageNotFoundError, version

try:
    _version = version("harmonia")
except PackageNotFoundError as e:
    raise PackageNotFoundError(
        "harmonia is not installed; please install it in your Python environment."
    ) from e
