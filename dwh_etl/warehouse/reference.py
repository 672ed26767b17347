"""
Reference data access: key-membership sets loaded once per batch.
"""

from dwh_etl.core.config import ReferenceSource
from dwh_etl.core.errors import PipelineError
from dwh_etl.observability import metrics
from dwh_etl.observability.logger import get_logger
from dwh_etl.transform.normalize import clean_text

from .staging import StagingReader

logger = get_logger(__name__)


class ReferenceData:
    """
    Read-only reference sets for one batch.

    Each set is read from staging the first time it is needed (or on
    load()) and then served from an immutable frozenset for the rest of
    the batch.
    """

    def __init__(self, reader: StagingReader, sources: dict[str, ReferenceSource]):
        self.reader = reader
        self.sources = dict(sources)
        self._sets: dict[str, frozenset[str]] = {}

    def load(self) -> "ReferenceData":
        """Load every configured reference set."""
        for name in self.sources:
            self.lookup_set(name)
        return self

    def lookup_set(self, name: str) -> frozenset[str]:
        """
        Return the keys of a reference set.

        Raises:
            PipelineError: If the reference set is not configured
            StagingUnavailableError: If its staging table is missing
        """
        if name in self._sets:
            return self._sets[name]

        source = self.sources.get(name)
        if source is None:
            raise PipelineError(f"Unknown reference set: {name}")

        keys = frozenset(
            key for key in (clean_text(v) for v in self.reader.read_keys(source.table, source.key))
            if key is not None
        )
        self._sets[name] = keys

        metrics.record_reference_set(name, len(keys))
        logger.info(
            f"Loaded reference set {name} with {len(keys)} keys",
            extra={"reference_set": name, "size": len(keys)},
        )
        return keys
