"""FastAPI service exposing the users collection of a MongoDB database.

This package bootstraps the HTTP server: configuration, middleware, the
mounted route module and the MongoDB connection made before listening.
"""

__version__ = "1.0.0"
