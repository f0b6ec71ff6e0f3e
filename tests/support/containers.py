"""Reusable Testcontainers configuration for integration tests.

Provides a standalone MongoDB container.
"""

from testcontainers.mongodb import MongoDbContainer as BaseMongoDbContainer


class MongoDBContainer(BaseMongoDbContainer):
    """Standalone MongoDB container for the users API."""

    def __init__(
        self,
        image: str = "mongo:7.0",
        **kwargs: object,
    ) -> None:
        """Initialize MongoDB container.

        Args:
            image: MongoDB image tag
            **kwargs: Additional container arguments
        """
        super().__init__(image=image, **kwargs)

    def get_database_uri(self, database: str) -> str:
        """Connection URL naming a database, authenticating against admin.

        Args:
            database: Database name placed in the URI path

        Returns:
            MongoDB connection string
        """
        base = self.get_connection_url().rstrip("/")
        return f"{base}/{database}?authSource=admin"

