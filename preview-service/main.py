import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import aio_pika
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from config import LOG_LEVEL, MAX_REDIRECTS, RABBITMQ_URL
from models.preview import PreviewResponse
from services.errors import (
    BodyReadError,
    HTTPStatusError,
    InvalidRedirectLimitError,
    InvalidURLError,
    NormalizationError,
    ParseError,
    PreviewError,
    TooManyRedirectsError,
    TransportError,
)
from services.fetcher import is_valid_url
from services.scraper import fetch_preview

logging.basicConfig(level=LOG_LEVEL.upper())
logger = logging.getLogger("preview-service")

PREVIEW_JOBS_QUEUE = "preview_jobs"
PREVIEW_RESULTS_QUEUE = "preview_results"

ERROR_STATUS = {
    InvalidURLError: 400,
    InvalidRedirectLimitError: 400,
    NormalizationError: 400,
    TooManyRedirectsError: 502,
    TransportError: 502,
    HTTPStatusError: 502,
    BodyReadError: 502,
    ParseError: 422,
}


def build_preview_result(data: dict) -> dict:
    """Run one preview job and shape the message published on the results queue."""
    url_id = data["urlId"]
    result = {
        "urlId": url_id,
        "link": None,
        "icon": None,
        "name": None,
        "title": None,
        "description": None,
        "images": None,
        "error": None,
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
    }
    try:
        doc = fetch_preview(data["originalUrl"], data.get("maxRedirects", MAX_REDIRECTS))
    except PreviewError as exc:
        logger.warning(f"Preview job {url_id} failed: {exc}")
        result["error"] = {"kind": exc.kind, "message": str(exc)}
        return result

    result.update(doc.preview.model_dump(mode="json"))
    return result


async def consume_preview_jobs():
    retry_interval = 2.0
    while True:
        try:
            connection = await aio_pika.connect_robust(RABBITMQ_URL)
            async with connection:
                channel = await connection.channel()
                jobs_queue = await channel.declare_queue(PREVIEW_JOBS_QUEUE, durable=True)
                await channel.declare_queue(PREVIEW_RESULTS_QUEUE, durable=True)

                logger.info("Connected to RabbitMQ, consuming preview jobs")

                async with jobs_queue.iterator() as queue_iter:
                    async for message in queue_iter:
                        async with message.process():
                            data = json.loads(message.body)

                            # fetch_preview uses requests (blocking), run in thread pool
                            loop = asyncio.get_running_loop()
                            result = await loop.run_in_executor(None, build_preview_result, data)

                            await channel.default_exchange.publish(
                                aio_pika.Message(
                                    body=json.dumps(result).encode(),
                                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                                ),
                                routing_key=PREVIEW_RESULTS_QUEUE,
                            )
                            logger.info("Preview result published", extra={"urlId": result["urlId"]})
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"RabbitMQ consumer error, retrying in {retry_interval}s: {exc}")
            await asyncio.sleep(retry_interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(consume_preview_jobs())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(title="Link Preview Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/preview", response_model=PreviewResponse)
def get_preview(
    url: str = Query(..., description="The URL to fetch metadata for"),
    max_redirects: int = Query(MAX_REDIRECTS, ge=0, description="Maximum redirect hops to follow"),
):
    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL. Must be a valid HTTP or HTTPS URL.")

    try:
        doc = fetch_preview(url, max_redirects)
    except PreviewError as exc:
        raise HTTPException(status_code=ERROR_STATUS.get(type(exc), 500), detail=str(exc)) from exc

    return PreviewResponse(
        url=url,
        fetched_at=datetime.now(timezone.utc),
        **doc.preview.model_dump(),
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    return {"status": "ready"}
