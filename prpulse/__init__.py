"""PRPulse: tracks which of your GitHub pull requests need attention."""

__version__ = "0.1.0"
