class ReverieError (Exception):

	"""Base error for the reverie package."""


class ConfigurationError (ReverieError, ValueError):

	"""Raised when a root, scale, mood or config value is not recognised or out of range."""
