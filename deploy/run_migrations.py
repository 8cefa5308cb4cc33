#!/usr/bin/env python3
"""
Migration runner.

Runs every `migrate_*.py` script in deploy/ in alphabetical order, each in its
own interpreter. Migrations are idempotent, so running them again is safe.
Use --init to create missing tables from the models first.
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path

DEPLOY_DIR = Path(__file__).parent
PROJECT_ROOT = DEPLOY_DIR.parent

sys.path.insert(0, str(PROJECT_ROOT))

from app.config import ENV_FILE_PATHS, load_env_file_fallback


def find_migration_scripts() -> list[Path]:
    """All migrate_*.py scripts in the deploy directory, sorted by name."""
    return sorted(DEPLOY_DIR.glob("migrate_*.py"))


def _build_script_command(script_path: Path) -> list[str]:
    venv_python = PROJECT_ROOT / ".venv" / "bin" / "python"
    if venv_python.exists():
        return [str(venv_python), str(script_path)]
    return [sys.executable, str(script_path)]


def run_script(script_path: Path, env: dict) -> bool:
    """Run one script; returns True when it exits cleanly."""
    print(f"\n{'=' * 60}")
    print(f"Running: {script_path.name}")
    print(f"{'=' * 60}")

    result = subprocess.run(
        _build_script_command(script_path),
        cwd=str(PROJECT_ROOT),
        env=env,
        capture_output=True,
        text=True,
    )
    if result.stdout:
        print(result.stdout)
    if result.stderr:
        print(result.stderr, file=sys.stderr)

    if result.returncode != 0:
        print(f"❌ {script_path.name} failed with exit code {result.returncode}")
        return False
    print(f"✅ {script_path.name} completed successfully")
    return True


def main(init_schema: bool = False) -> int:
    """Run all migrations; returns a process exit code."""
    print("Selah Database Migration Runner")

    load_env_file_fallback([PROJECT_ROOT / ".env", *ENV_FILE_PATHS])
    if not os.getenv("DATABASE_URL"):
        print("WARNING: DATABASE_URL not set; scripts will fall back to their defaults")
    env = {**os.environ, "PYTHONPATH": str(PROJECT_ROOT)}

    if init_schema and not run_script(DEPLOY_DIR / "init_db.py", env):
        return 1

    migrations = find_migration_scripts()
    if not migrations:
        print("No migration scripts found in deploy/ directory.")
        return 0

    failed = [m.name for m in migrations if not run_script(m, env)]
    if failed:
        print(f"❌ {len(failed)} migration(s) failed: {', '.join(failed)}")
        return 1

    print(f"✅ All {len(migrations)} migration(s) completed successfully!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run database migrations for Selah")
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create missing tables from the models before running migrations",
    )
    args = parser.parse_args()
    sys.exit(main(init_schema=args.init))
