"""Background execution of translation jobs.

Jobs are plain callables taking keyword arguments. Each one runs inside
an application context; retries are the caller's business.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'translation_queue'


class JobQueue:
    """Interface: enqueue(job, **kwargs)."""
    
    def __init__(self, app):
        self.app = app
    
    def enqueue(self, job, **kwargs):
        raise NotImplementedError
    
    def run(self, job, kwargs):
        """Execute one job with an application context."""
        if has_app_context():
            return self._call(job, kwargs)
        with self.app.app_context():
            return self._call(job, kwargs)
    
    @staticmethod
    def _call(job, kwargs):
        try:
            return job(**kwargs)
        except Exception as e:
            logger.error(f'Job {getattr(job, "__name__", job)} crashed with {kwargs}: {type(e).__name__}: {e}')


class InlineJobQueue(JobQueue):
    """Runs jobs immediately in the caller's thread."""
    
    def enqueue(self, job, **kwargs):
        self.run(job, kwargs)


class ThreadPoolJobQueue(JobQueue):
    """Runs jobs on a pool of worker threads (greenlets under gevent)."""
    
    def __init__(self, app, max_workers=4):
        super().__init__(app)
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='translation')
    
    def enqueue(self, job, **kwargs):
        logger.debug(f'Enqueued {getattr(job, "__name__", job)} with {kwargs}')
        return self.executor.submit(self._run_in_new_context, job, kwargs)
    
    def _run_in_new_context(self, job, kwargs):
        with self.app.app_context():
            return self._call(job, kwargs)


def init_job_queue(app):
    if app.config.get('TRANSLATION_QUEUE_EAGER'):
        queue = InlineJobQueue(app)
    else:
        queue = ThreadPoolJobQueue(app, max_workers=app.config.get('TRANSLATION_QUEUE_WORKERS', 4))
    app.extensions[EXTENSION_KEY] = queue
    return queue


def get_job_queue() -> JobQueue:
    return current_app.extensions[EXTENSION_KEY]
