"""Receipt image to stored bill ingestion pipeline."""

import logging
from enum import Enum
from typing import Optional

from billscan.models.bill import Bill
from billscan.services.bill_deserializer import deserialize_bill
from billscan.services.bill_store import BillStore
from billscan.services.gemini_client import GeminiBillExtractor
from billscan.services.image_intake import validate_image
from billscan.services.response_normalizer import normalize_response
from billscan.services.results import ErrorKind, Failure, Result

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Stages an upload moves through."""
    RECEIVED = "Received"
    VALIDATED = "Validated"
    EXTRACTING = "Extracting"
    NORMALIZING = "Normalizing"
    DESERIALIZING = "Deserializing"
    FIELD_VALIDATED = "FieldValidated"
    PERSISTED = "Persisted"
    REJECTED = "Rejected"
    UPSTREAM_FAILED = "UpstreamFailed"


class BillIngestionPipeline:
    """Runs intake, extraction, normalization, validation and storage for one upload at a time.

    The pipeline holds no per-upload state, so a single instance can serve
    concurrent requests.
    """

    def __init__(self, extractor: GeminiBillExtractor, store: BillStore):
        self._extractor = extractor
        self._store = store

    def _fail(self, filename: Optional[str], stage: PipelineStage, failure: Failure) -> Failure:
        terminal = PipelineStage.UPSTREAM_FAILED if failure.kind is ErrorKind.UPSTREAM else PipelineStage.REJECTED
        logger.warning(
            f"Upload {filename!r} {stage.value} -> {terminal.value}: {failure.kind.value}: {failure.message}"
        )
        if failure.detail:
            logger.debug(f"Failure detail for {filename!r}: {failure.detail[:500]}")
        return failure

    async def upload_image(
        self,
        data: bytes,
        filename: Optional[str],
        declared_length: Optional[int],
    ) -> Result[Bill]:
        """
        Turn an uploaded receipt image into a stored bill.

        Args:
            data: Uploaded image bytes
            filename: Client-supplied filename
            declared_length: Client-declared size in bytes, if known

        Returns:
            Ok with the stored Bill, or the Failure of the first stage that failed.
            Nothing is stored unless every stage succeeds.
        """
        logger.info(f"Upload {filename!r} {PipelineStage.RECEIVED.value}")

        intake = validate_image(data, filename, declared_length)
        if isinstance(intake, Failure):
            return self._fail(filename, PipelineStage.RECEIVED, intake)
        image = intake.value
        logger.info(f"Upload {filename!r} {PipelineStage.VALIDATED.value} ({image.mime_type}, {image.size} bytes)")

        logger.info(f"Upload {filename!r} {PipelineStage.EXTRACTING.value}")
        extracted = await self._extractor.extract(image.data, image.mime_type)
        if isinstance(extracted, Failure):
            return self._fail(filename, PipelineStage.EXTRACTING, extracted)

        logger.info(f"Upload {filename!r} {PipelineStage.NORMALIZING.value}")
        normalized = normalize_response(extracted.value)
        if isinstance(normalized, Failure):
            return self._fail(filename, PipelineStage.NORMALIZING, normalized)

        logger.info(f"Upload {filename!r} {PipelineStage.DESERIALIZING.value}")
        deserialized = deserialize_bill(normalized.value)
        if isinstance(deserialized, Failure):
            return self._fail(filename, PipelineStage.DESERIALIZING, deserialized)
        logger.info(f"Upload {filename!r} {PipelineStage.FIELD_VALIDATED.value}")

        stored = await self._store.insert(deserialized.value)
        if isinstance(stored, Failure):
            return self._fail(filename, PipelineStage.FIELD_VALIDATED, stored)

        logger.info(f"Upload {filename!r} {PipelineStage.PERSISTED.value} as bill {stored.value.id}")
        return stored
