#!/usr/bin/env python3
"""Validate that the runtime version and package metadata agree."""

from __future__ import annotations

import re
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
VERSION_FILE = REPO_ROOT / "backend" / "trendline" / "version.py"
MAIN_FILE = REPO_ROOT / "backend" / "trendline" / "main.py"
PYPROJECT_FILE = REPO_ROOT / "pyproject.toml"


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _parse_app_version(version_text: str) -> str | None:
    match = re.search(r'^APP_VERSION\s*=\s*"([^"]+)"\s*$', version_text, flags=re.MULTILINE)
    if not match:
        return None
    return match.group(1).strip()


def _parse_project_version(pyproject_text: str) -> str | None:
    section = re.search(r"^\[project\]\s*$(.*?)(?=^\[|\Z)", pyproject_text, flags=re.MULTILINE | re.DOTALL)
    if not section:
        return None
    match = re.search(r'^version\s*=\s*"([^"]+)"\s*$', section.group(1), flags=re.MULTILINE)
    return match.group(1).strip() if match else None


def _validate_semver(version: str) -> bool:
    return re.fullmatch(r"\d+\.\d+\.\d+", version) is not None


def collect_errors(repo_root: Path = REPO_ROOT) -> list[str]:
    version_file = repo_root / VERSION_FILE.relative_to(REPO_ROOT)
    main_file = repo_root / MAIN_FILE.relative_to(REPO_ROOT)
    pyproject_file = repo_root / PYPROJECT_FILE.relative_to(REPO_ROOT)

    errors: list[str] = []
    for path, label in (
        (version_file, "version source"),
        (main_file, "backend app entrypoint"),
        (pyproject_file, "pyproject.toml"),
    ):
        if not path.exists():
            errors.append(f"Missing {label}: {path}")
    if errors:
        return errors

    app_version = _parse_app_version(_read(version_file))
    if app_version is None:
        errors.append(f"Could not parse APP_VERSION from {version_file}")
        app_version = "unknown"
    elif not _validate_semver(app_version):
        errors.append(f"APP_VERSION must follow X.Y.Z semantic versioning, found: {app_version}")

    main_text = _read(main_file)
    if "from trendline.version import APP_VERSION" not in main_text:
        errors.append("backend/trendline/main.py must import APP_VERSION from trendline.version.")
    if re.search(r"FastAPI\([^)]*version\s*=\s*APP_VERSION", main_text, flags=re.DOTALL) is None:
        errors.append("backend/trendline/main.py must set FastAPI version=APP_VERSION.")

    project_version = _parse_project_version(_read(pyproject_file))
    if project_version is None:
        errors.append("pyproject.toml must declare [project] version.")
    elif project_version != app_version:
        errors.append(
            f"pyproject.toml version {project_version} does not match APP_VERSION {app_version}."
        )
    return errors


def main() -> int:
    errors = collect_errors()
    if errors:
        for error in errors:
            print(f"[ERROR] {error}")
        return 1

    app_version = _parse_app_version(_read(VERSION_FILE))
    print(f"[OK] Release consistency checks passed for v{app_version}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
