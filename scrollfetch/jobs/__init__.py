"""Scrape job orchestration."""

from scrollfetch.jobs.runner import JobRunner, get_job_runner, job_runner

__all__ = [
    "JobRunner",
    "get_job_runner",
    "job_runner",
]
