"""
sentinelcheck - static checks for WorkState sentinels and ${} placeholders.

Entry points:
    analyze_source(source)  - one snippet
    analyze_files(paths)    - explicit files, resolved together
    analyze_repo(path)      - every Python file of a Git working tree
"""
from .orchestrator import analyze_files, analyze_repo, analyze_source

__version__ = "0.1.0"

__all__ = ["analyze_files", "analyze_repo", "analyze_source"]
