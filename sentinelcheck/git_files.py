"""
Git file discovery.

Handles:
- Repository validation using subprocess (no GitPython dependency)
- Listing tracked and untracked-but-not-ignored Python files
- Skipping hidden, venv and cache directories

Output is sorted and deterministic.
"""
import subprocess
from pathlib import Path
from typing import List, Tuple

_SKIPPED_DIRS = {"venv", "__pycache__"}


class GitFileLister:
    """Lists the Python files of a Git working tree."""

    def __init__(self, repo_path: str):
        self.repo_path = Path(repo_path).resolve()

        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if result.returncode != 0:
            raise ValueError(f"Not a Git repository: {repo_path}")

    def _run_git(self, args: List[str], check: bool = True) -> Tuple[int, str, str]:
        result = subprocess.run(
            ["git"] + args,
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if check and result.returncode != 0:
            raise RuntimeError(
                f"Git command failed: {' '.join(args)}\n{result.stderr}"
            )
        return result.returncode, result.stdout, result.stderr

    @staticmethod
    def _is_skipped(relative: Path) -> bool:
        return any(
            part.startswith(".") or part in _SKIPPED_DIRS
            for part in relative.parts[:-1]
        )

    def python_files(self) -> List[Path]:
        """
        Python files under repo_path, relative to it.

        Includes untracked files unless .gitignore excludes them.
        Tracked files deleted from the working tree are left out.
        """
        _, stdout, _ = self._run_git(
            ["ls-files", "-z", "--cached", "--others", "--exclude-standard", "--", "*.py"]
        )

        files = set()
        for entry in stdout.split("\0"):
            if not entry.endswith(".py"):
                continue
            relative = Path(entry)
            if self._is_skipped(relative):
                continue
            if (self.repo_path / relative).is_file():
                files.add(relative)

        return sorted(files)


def list_python_files(repo_path: str) -> List[Path]:
    return GitFileLister(repo_path).python_files()
