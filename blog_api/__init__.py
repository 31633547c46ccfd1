"""Blog comments API: posts, threaded comments and likes."""

__version__ = "0.1.0"
