"""
Sync scheduler
Periodic and on-demand block sync passes based on APScheduler
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR, EVENT_JOB_MISSED

from ..services.sync_service.block_sync_service import BlockSyncService
from ..utils.config import AppConfig


PERIODIC_JOB_ID = 'block_sync_periodic'
MANUAL_JOB_ID = 'block_sync_manual'


class BlockSyncScheduler:
    """Block sync scheduler"""

    def __init__(self, config: AppConfig, sync_service: BlockSyncService,
                 log_dir: Optional[str] = None):
        self.config = config
        self.sync_service = sync_service
        self.log_dir = log_dir
        self.logger = self._setup_logger()
        self.scheduler = self._setup_scheduler()

    def _setup_logger(self) -> logging.Logger:
        """Setup logger"""
        logger = logging.getLogger(f'{__name__}.BlockSyncScheduler')
        logger.setLevel(getattr(logging, self.config.log_level, logging.INFO))

        if not logger.handlers:
            if self.log_dir:
                os.makedirs(self.log_dir, exist_ok=True)

                file_handler = logging.FileHandler(
                    os.path.join(self.log_dir, f'scheduler_{datetime.now().strftime("%Y%m%d")}.log')
                )
                file_handler.setFormatter(logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                ))
                logger.addHandler(file_handler)

            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s'
            ))
            logger.addHandler(console_handler)

        return logger

    def _setup_scheduler(self) -> BackgroundScheduler:
        """Setup scheduler"""
        executors = {
            'default': ThreadPoolExecutor(max_workers=1),
        }

        job_defaults = {
            'coalesce': True,  # Merge piled-up runs
            'max_instances': 1,  # Only one pass at a time in this process
            'misfire_grace_time': 600,
        }

        scheduler = BackgroundScheduler(executors=executors, job_defaults=job_defaults)

        scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED)
        scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)
        scheduler.add_listener(self._job_missed_listener, EVENT_JOB_MISSED)

        return scheduler

    def _job_executed_listener(self, event):
        """Job executed listener"""
        result = event.retval if isinstance(event.retval, dict) else {}
        self.logger.info(f"Job executed: {event.job_id} ({result.get('status', 'unknown')})")

    def _job_error_listener(self, event):
        """Job error listener"""
        self.logger.error(f"Job failed: {event.job_id}, exception: {event.exception}")

    def _job_missed_listener(self, event):
        """Job missed listener"""
        self.logger.warning(f"Job missed: {event.job_id}")

    def run_sync(self) -> dict:
        """Wrapper around one sync pass"""
        self.logger.info("Scheduled trigger: starting block sync")
        return self.sync_service.perform_full_sync()

    def add_periodic_job(self):
        """Add the interval sync job"""
        self.scheduler.add_job(
            func=self.run_sync,
            trigger='interval',
            minutes=self.config.sync_interval_minutes,
            id=PERIODIC_JOB_ID,
            name='Periodic block sync',
            replace_existing=True
        )
        self.logger.info(f"Periodic sync every {self.config.sync_interval_minutes} minutes")

    def trigger_now(self, delay_seconds: float = 0):
        """Queue a one-shot sync pass (first auth, explicit request, cache clear)"""
        self.scheduler.add_job(
            func=self.run_sync,
            trigger='date',
            run_date=datetime.now() + timedelta(seconds=delay_seconds),
            id=MANUAL_JOB_ID,
            name='On-demand block sync',
            replace_existing=True
        )
        self.logger.info(f"On-demand sync queued in {delay_seconds} seconds")

    def start(self, run_immediately: bool = True):
        """Start the scheduler"""
        self.add_periodic_job()
        if run_immediately:
            self.trigger_now()
        self.scheduler.start()

        job = self.scheduler.get_job(PERIODIC_JOB_ID)
        self.logger.info(f"Scheduler started, next periodic run: {job.next_run_time if job else 'n/a'}")

    def shutdown(self):
        """Shutdown the scheduler"""
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.logger.info("Scheduler stopped")
        except Exception as e:
            self.logger.error(f"Scheduler shutdown failed: {e}")

    def list_jobs(self):
        """List registered jobs"""
        jobs = self.scheduler.get_jobs()
        if not jobs:
            self.logger.info("No registered jobs")
            return []

        for job in jobs:
            self.logger.info(f"- {job.id}: {job.name}, next run: {getattr(job, 'next_run_time', None)}")
        return jobs
