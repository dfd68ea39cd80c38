# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Main server for the oplog-stats processing layer.

Connects Redis and SQLite, runs the tailing pipeline, and reports the
failing stage when it halts.
"""

import asyncio
import logging
import sys
from typing import Optional, Tuple

import redis
import redis.asyncio as aioredis

from ..config import Config
from ..errors import OplogStatsError, PipelineHalted, SourceUnavailable
from .database.schema import create_schema
from .database.sqlite_client import SQLiteClient
from .database.stores import RawSeriesStore, SummaryStore
from .oplog.change_log import RedisChangeLog
from .pipeline import TailPipeline
from .summary.recompute import SummaryRecomputer

logger = logging.getLogger(__name__)


def create_redis_client(config: Config) -> aioredis.Redis:
    """
    Create the async Redis client.

    No socket read timeout is set: the tail blocks indefinitely.
    """
    return aioredis.from_url(
        config.redis_url,
        socket_timeout=None,
        socket_connect_timeout=5.0,
        decode_responses=False,
    )


def open_stores(config: Config) -> Tuple[SQLiteClient, RawSeriesStore, SummaryStore]:
    """Initialize the database and return its stores."""
    sqlite_client = SQLiteClient(str(config.get_db_path()))
    sqlite_client.initialize_database()
    create_schema(sqlite_client)
    return sqlite_client, RawSeriesStore(sqlite_client), SummaryStore(sqlite_client)


class SummaryServer:
    """
    Main server for summary maintenance.

    Manages:
    - SQLite database initialization
    - Redis connection
    - Tailing pipeline
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize server.

        Args:
            config: Configuration instance (creates default if not provided)
        """
        self.config = config or Config()

        self.sqlite_client: Optional[SQLiteClient] = None
        self.raw_store: Optional[RawSeriesStore] = None
        self.summary_store: Optional[SummaryStore] = None
        self.redis_client: Optional[aioredis.Redis] = None
        self.change_log: Optional[RedisChangeLog] = None
        self.pipeline: Optional[TailPipeline] = None
        self.running = False

    def _initialize_database(self) -> None:
        """Initialize SQLite database and schema."""
        logger.info(f"Initializing database: {self.config.get_db_path()}")
        self.sqlite_client, self.raw_store, self.summary_store = open_stores(self.config)
        logger.info("Database initialized successfully")

    async def _initialize_redis(self) -> None:
        """Initialize Redis connection."""
        logger.info("Initializing Redis connection")

        self.redis_client = create_redis_client(self.config)

        try:
            await self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            raise SourceUnavailable(f"Failed to connect to Redis at {self.config.redis_url}: {e}") from e

        self.change_log = RedisChangeLog(self.redis_client, stream_name=self.config.stream_name)

    def _initialize_pipeline(self) -> None:
        """Initialize the tailing pipeline."""
        recomputer = SummaryRecomputer(self.raw_store, self.summary_store)
        self.pipeline = TailPipeline(
            source=self.change_log,
            recomputer=recomputer,
            namespace=self.config.namespace,
            queue_size=self.config.queue_size,
            skip_missing=self.config.skip_missing,
        )
        logger.info("Pipeline initialized")

    async def start(self) -> None:
        """Start the server; returns only when the pipeline ends."""
        if self.running:
            logger.warning("Server already running")
            return

        logger.info("Starting oplog-stats server...")

        self._initialize_database()
        await self._initialize_redis()
        self._initialize_pipeline()

        self.running = True
        await self.pipeline.run()

    async def stop(self) -> None:
        """Stop the server and release connections."""
        self.running = False

        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

        logger.info("Server stopped")


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


async def serve(config: Config) -> int:
    """
    Run the server until it halts.

    Returns:
        Process exit status (0 if the pipeline ended cleanly)
    """
    server = SummaryServer(config)
    try:
        await server.start()
    except PipelineHalted as e:
        logger.error(f"Pipeline halted in stage '{e.stage}': {e.cause}")
        return 1
    except OplogStatsError as e:
        logger.error(f"Server error: {e}")
        return 1
    finally:
        await server.stop()
    return 0


def main() -> None:
    """Main entry point."""
    config = Config()
    setup_logging(config.log_level)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        sys.exit(2)

    try:
        status = asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        status = 0
    sys.exit(status)


if __name__ == "__main__":
    main()
