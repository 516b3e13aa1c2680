"""Version information for retirement_risk."""

__version__ = "0.4.0"
