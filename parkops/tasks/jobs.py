from parkops.tasks.celery_app import celery
from parkops.tasks import worker_jobs

@celery.task(name="parkops.tasks.jobs.expire_holds")
def expire_holds():
    return worker_jobs.expire_holds()
