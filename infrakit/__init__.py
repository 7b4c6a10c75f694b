"""infrakit - multi-cloud resource inventory with a local snapshot cache."""

__version__ = "0.3.0"

__all__ = ["__version__"]
