from flightbot.tasks.celery_app import celery
from flightbot.tasks import worker_jobs


@celery.task(name="flightbot.tasks.jobs.process_email_queue")
def process_email_queue(limit: int = 50):
    return worker_jobs.process_email_queue(limit=limit)
