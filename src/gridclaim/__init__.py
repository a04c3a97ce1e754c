"""gridclaim — capacity-capped assignment of usernames to grid cells."""

__version__ = "0.1.0"
