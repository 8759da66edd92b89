from mathezoo.generation.task_packages import PATTERNS, TaskPackage, TaskPackageGenerator

__all__ = ["PATTERNS", "TaskPackage", "TaskPackageGenerator"]
