"""
Monitor Server module - Main server class
"""

import logging

from config import Config
from models import ServerStats
from shield_modules.decision_engine import DecisionEngine
from shield_modules.rule_loader import RuleLoader
from shield_modules.sqlite_store import SQLiteStore
from shield_modules.threat_store import MemoryStore, ThreatStore


logger = logging.getLogger(__name__)


class MonitorServer:
    """Security monitor server components"""

    def __init__(self, config: Config, store: ThreatStore):
        self.config = config
        self.store = store
        self.stats = ServerStats()
        self.engine = DecisionEngine(store, config)

    @classmethod
    async def create(cls, config: Config):
        """Async factory method to create MonitorServer"""
        if config.store_backend == "memory":
            store = MemoryStore()
        else:
            store = SQLiteStore(config.db_path)
        await store.initialize()

        await RuleLoader().populate(
            store,
            seed_defaults=config.seed_default_rules,
            rules_file=config.rules_file,
        )
        logger.info(f"Monitor server using {config.store_backend} store")
        return cls(config, store)

    async def close(self):
        await self.store.close()
