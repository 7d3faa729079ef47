"""Compile a survey report and push it through the delivery channel.

Unlike notifications, every failure here reaches the administrator: the
call blocks until the channel accepts the workbook or a terminal error is
raised. There are no retries.
"""
# surveydesk/services/delivery.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from surveydesk.core.errors import (
    ConfigurationError,
    DeliveryTimeoutError,
    EmptyReportError,
    ExternalTransportError,
)
from surveydesk.db.models import Survey, Response
from surveydesk.services.export import report_to_xlsx, report_filename, report_caption
from surveydesk.services.report import compile_report
from surveydesk.services.telegram import DocumentChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryAck:
    survey_id: str
    filename: str
    response_count: int
    delivered_at: datetime


@dataclass(frozen=True)
class ReportArtifact:
    payload: bytes
    filename: str
    caption: str
    response_count: int


def build_artifact(survey: Survey, responses: Sequence[Response], now: Optional[datetime] = None) -> ReportArtifact:
    """Compile and serialize the report. Refuses an empty response set."""
    if not responses:
        raise EmptyReportError()

    now = now or datetime.now(timezone.utc)
    report = compile_report(survey, responses)
    return ReportArtifact(
        payload=report_to_xlsx(report),
        filename=report_filename(survey.title, now),
        caption=report_caption(survey.title, len(responses)),
        response_count=len(responses),
    )


class ReportDelivery:
    def __init__(self, channel: Optional[DocumentChannel], timeout: float):
        self.channel = channel
        self.timeout = timeout

    async def deliver(self, survey: Survey, responses: Sequence[Response]) -> DeliveryAck:
        if not responses:
            raise EmptyReportError()
        if self.channel is None or not self.channel.configured:
            raise ConfigurationError("Report delivery channel is not configured (BOT_TOKEN / REPORT_CHAT_ID)")

        logger.info("[Export] Compiling %d response(s) for survey %s", len(responses), survey.survey_id)
        artifact = await asyncio.to_thread(build_artifact, survey, responses)

        try:
            await asyncio.wait_for(
                self.channel.send_document(artifact.payload, artifact.filename, artifact.caption),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("[Export] Delivery of %s timed out after %.1fs", artifact.filename, self.timeout)
            raise DeliveryTimeoutError(f"Report delivery timed out after {self.timeout:g}s") from e
        except Exception as e:
            logger.error("[Export] Delivery of %s failed: %s", artifact.filename, e)
            raise ExternalTransportError(f"Report delivery failed: {e}") from e

        logger.info("[Export] Report %s delivered", artifact.filename)
        return DeliveryAck(
            survey_id=survey.survey_id,
            filename=artifact.filename,
            response_count=artifact.response_count,
            delivered_at=datetime.now(timezone.utc),
        )
