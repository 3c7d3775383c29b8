"""In-process job queue for outgoing email.

Jobs are only ever enqueued after the database work that triggers them has
committed; the queue never feeds back into the request that produced the job.
"""
import asyncio
import uuid
from pydantic import BaseModel
from typing import Any, Dict, Optional
from utils.errors import UpstreamError

PURCHASE_SUCCESS_JOB = "send_purchase_success"


class RetryPolicy(BaseModel):
    attempts: int = 3
    backoff_seconds: float = 1.0

    def delay_for(self, attempt: int):
        return self.backoff_seconds * 2 ** (attempt - 1)


class EmailJob(BaseModel):
    id: str
    job_type: str
    payload: Dict[str, Any]
    retry_policy: RetryPolicy = RetryPolicy()
    attempts_made: int = 0


class EmailQueue:
    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def qsize(self):
        return self._queue.qsize()

    def enqueue(
        self,
        job_type: str,
        payload: Dict[str, Any],
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if self._closed:
            raise UpstreamError("Email queue is closed")
        job = EmailJob(
            id=uuid.uuid4().hex[:12],
            job_type=job_type,
            payload=payload,
            retry_policy=retry_policy or RetryPolicy(),
        )
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull as e:
            raise UpstreamError("Email queue is full") from e
        return job

    async def get(self):
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    async def join(self):
        await self._queue.join()

    def close(self):
        self._closed = True
