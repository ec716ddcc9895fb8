"""
Modder 下载层

包含文件下载与校验，以及并发调度。
"""

from modder.download.manager import DownloadManager
from modder.download.scheduler import FanOutScheduler, Job
from modder.download.verifier import FileVerifier

__all__ = [
    "DownloadManager",
    "FanOutScheduler",
    "Job",
    "FileVerifier",
]
