import traceback
from typing import Optional

import config
from app.errors import AckError, ConversionError, ConversionTimeout, DecodeError, JobIOError
from app.models import ConversionOutcome, ConversionRequest, Failure, JobState, Success
from app.result_publisher import ResultPublisher
from infra.document_infra.codec import RequestCodec
from infra.document_infra.converter import ConversionRunner
from infra.document_infra.stager import FileStager
from infra.queue_infra.client import Delivery, QueueClient
from utils import get_logger

logger = get_logger(__name__)

ACK_AFTER_STAGING = "staged"
ACK_AFTER_PUBLISH = "published"


class _Job:
    """Per-delivery bookkeeping: current state and whether it was acked."""

    def __init__(self, delivery: Delivery):
        self.delivery = delivery
        self.state = JobState.received
        self.acked = False
        self.label = delivery.delivery_tag

    def move(self, state: JobState) -> None:
        logger.debug(f"Job {self.label}: {self.state.value} -> {state.value}")
        self.state = state


class JobPipeline:
    """Decode, stage, convert and publish one delivery.

    With ack_mode "staged" the delivery is acked as soon as its input is on
    disk, so a crash before publishing loses the outcome. With "published"
    the ack waits for a successful publish and the broker redelivers
    otherwise; staging overwrites by file_id, so reprocessing is safe.
    """

    def __init__(
        self,
        client: QueueClient,
        stager: Optional[FileStager] = None,
        runner: Optional[ConversionRunner] = None,
        publisher: Optional[ResultPublisher] = None,
        ack_mode: str = "",
        publish_failures: Optional[bool] = None,
    ):
        self.client = client
        self.stager = stager or FileStager(config.WORK_DIR)
        self.runner = runner or ConversionRunner()
        self.publisher = publisher or ResultPublisher(client)
        self.ack_mode = ack_mode or config.ACK_MODE
        if self.ack_mode not in (ACK_AFTER_STAGING, ACK_AFTER_PUBLISH):
            raise ValueError(f"Unknown ack mode: {self.ack_mode!r}")
        self.publish_failures = config.PUBLISH_FAILURES if publish_failures is None else publish_failures

    async def handle(self, delivery: Delivery) -> JobState:
        """Process one delivery. Per-job errors are logged, never raised."""
        job = _Job(delivery)

        try:
            request = RequestCodec.decode(delivery.body)
        except DecodeError as e:
            logger.error(f"Dropping malformed delivery {delivery.delivery_tag}: {e}")
            job.move(JobState.failed)
            await self._ack(job)
            return job.state

        job.label = request.file_id
        logger.info(
            f"Convert {request.file_id} from {request.from_filetype} "
            f"to {request.to_filetype} for chat {request.chat_id}"
        )

        try:
            async with self.stager.staged(request) as input_path:
                job.move(JobState.staged)
                if self.ack_mode == ACK_AFTER_STAGING:
                    await self._ack(job)
                job.move(JobState.converting)
                outcome = await self._convert(request, input_path)
        except JobIOError as e:
            logger.error(f"Staging failed for {request.file_id}: {e}")
            outcome = Failure(chat_id=request.chat_id, error_message=str(e))

        delivered = await self._deliver(outcome, request)

        if self.ack_mode == ACK_AFTER_STAGING or delivered:
            await self._ack(job)
        else:
            logger.warning(
                f"Leaving delivery {delivery.delivery_tag} for {request.file_id} "
                f"unacknowledged so it is redelivered"
            )

        job.move(JobState.completed if isinstance(outcome, Success) and delivered else JobState.failed)
        return job.state

    async def _convert(self, request: ConversionRequest, input_path) -> ConversionOutcome:
        try:
            result = await self.runner.run(input_path, request.from_filetype, request.to_filetype)
            if not result.succeeded:
                error_message = result.diagnostic or f"Converter exited with code {result.exit_code}"
                logger.warning(f"Pandoc subprocess failed for {request.file_id}")
                logger.warning(error_message)
                return Failure(chat_id=request.chat_id, error_message=error_message)
            output = await self.runner.read_output(result)
        except ConversionTimeout as e:
            logger.error(f"{e} (file {request.file_id})")
            return Failure(chat_id=request.chat_id, error_message=str(e))
        except (ConversionError, JobIOError) as e:
            logger.error(f"Conversion failed for {request.file_id}: {e}")
            return Failure(chat_id=request.chat_id, error_message=str(e))
        except Exception as e:
            logger.error(f"Unexpected error converting {request.file_id}: {e}")
            logger.error(f"Traceback:\n{traceback.format_exc()}")
            return Failure(chat_id=request.chat_id, error_message=f"Internal error: {e}")

        logger.info(f"Pandoc subprocess succeeded for {request.file_id}")
        return Success(chat_id=request.chat_id, to_filetype=request.to_filetype, output_bytes=output)

    async def _deliver(self, outcome: ConversionOutcome, request: ConversionRequest) -> bool:
        """Publish the outcome; True when nothing remains to be sent."""
        if isinstance(outcome, Failure) and not self.publish_failures:
            logger.warning(f"Failure for {request.file_id} not published (PUBLISH_FAILURES is off)")
            return True
        result = await self.publisher.publish(outcome)
        if not result.success:
            logger.error(f"Outcome for {request.file_id} was not delivered: {result.error}")
        return result.success

    async def _ack(self, job: _Job) -> None:
        if job.acked:
            return
        try:
            await self.client.ack(job.delivery)
        except AckError as e:
            logger.error(f"{e}")
            return
        except Exception as e:
            logger.error(f"Unexpected error acking {job.delivery.delivery_tag}: {e}")
            logger.error(f"Traceback:\n{traceback.format_exc()}")
            return
        job.acked = True
        logger.info(f"Acked delivery {job.delivery.delivery_tag} ({job.label})")
