import asyncio
import re
from services.mail_service import send_purchase_success_email
from services.queue_service import EmailQueue, EmailJob, PURCHASE_SUCCESS_JOB


JOB_HANDLERS = {
    PURCHASE_SUCCESS_JOB: send_purchase_success_email,
}


def mask_email(email: str):
    return re.sub(r"(^.).+(@.+)", r"\1***\2", email or "")


async def email_worker_loop(queue: EmailQueue, handlers=None):
    while True:
        try:
            job = await queue.get()
            try:
                await process_job(job, handlers)
            finally:
                queue.task_done()
        except asyncio.CancelledError:
            print("Email worker stopped")
            raise
        except Exception as e:
            print(f"Email worker error: {e}")
            await asyncio.sleep(1)


async def process_job(job: EmailJob, handlers=None):
    handlers = handlers or JOB_HANDLERS
    handler = handlers.get(job.job_type)
    if not handler:
        print(f"Unknown email job type: {job.job_type}")
        return False

    print(f"Processing email job {job.id} for {mask_email(job.payload.get('email'))}")
    policy = job.retry_policy
    for attempt in range(1, policy.attempts + 1):
        job.attempts_made = attempt
        try:
            result = await asyncio.to_thread(handler, job.payload)
            if result and result.get("success"):
                print(f"Email job {job.id} completed")
                return True
            error = result.get("error") if result else "empty result"
        except Exception as e:
            error = str(e)
        if attempt < policy.attempts:
            delay = policy.delay_for(attempt)
            print(f"Email job {job.id} attempt {attempt} failed: {error}, retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
        else:
            print(f"Email job {job.id} failed after {attempt} attempts: {error}")
    return False
