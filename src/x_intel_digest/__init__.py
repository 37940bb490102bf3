"""X intelligence digest: fetch recent posts and push them to a QQ bot."""

__version__ = "0.1.0"
