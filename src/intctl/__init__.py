"""intctl - manage integrations on hosted platform projects."""

__version__ = "0.1.0"
