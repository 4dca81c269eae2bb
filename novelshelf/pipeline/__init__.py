"""Pipeline package: manifests, artifact store, scheduling and reporting.

Public re-exports so callers can write::

    from novelshelf.pipeline import load_novel, run_novel, scan
"""

from novelshelf.pipeline.classifier import group_by_category, remediation_numbers, scan
from novelshelf.pipeline.manifest import NovelConfig, load_novel
from novelshelf.pipeline.runner import build_index, rebuild_clean, run_novel
from novelshelf.pipeline.scheduler import BatchReport, run_batch
from novelshelf.pipeline.storage import ArtifactStore

__all__ = [
    "ArtifactStore",
    "BatchReport",
    "NovelConfig",
    "build_index",
    "group_by_category",
    "load_novel",
    "rebuild_clean",
    "remediation_numbers",
    "run_batch",
    "run_novel",
    "scan",
]
