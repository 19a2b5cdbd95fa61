#!/usr/bin/env python3
"""
Breaking-change demo for the contract checker
Records the 1.0.0 contract of the sample UserService, checks it against the
unchanged library, then against the 2.0.0 library that switched ids to strings.
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import List


class Colors:
    """ANSI color codes for terminal output"""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    CYAN = '\033[0;36m'
    GRAY = '\033[0;90m'
    NC = '\033[0m'  # No Color

    @staticmethod
    def is_supported():
        """Check if terminal supports colors"""
        return sys.stdout.isatty() and os.name != 'nt' or 'ANSICON' in os.environ


class Logger:
    """Simple colored logger"""

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors and Colors.is_supported()

    def _color(self, text: str, color: str) -> str:
        if self.use_colors:
            return f"{color}{text}{Colors.NC}"
        return text

    def narrator(self, message: str):
        print()
        print(self._color("-" * 78, Colors.CYAN))
        print(self._color(f"  NARRATOR: {message}", Colors.CYAN))
        print(self._color("-" * 78, Colors.CYAN))
        print()

    def info(self, message: str):
        print(self._color(message, Colors.CYAN))

    def success(self, message: str):
        print(self._color(message, Colors.GREEN))

    def warning(self, message: str):
        print(self._color(message, Colors.YELLOW))

    def error(self, message: str):
        print(self._color(message, Colors.RED), file=sys.stderr)


logger = Logger()


def run_checker(args: List[str], cwd: Path, env: dict, use_uv: bool) -> int:
    """Run the contract-check CLI and return its exit code"""
    python = ['uv', 'run', 'python'] if use_uv else [sys.executable]
    cmd = python + ['apps/contract-checker/contract_checker/main.py'] + args
    logger.warning(f"> {' '.join(args)}")
    return subprocess.run(cmd, cwd=cwd, env=env).returncode


def pause(enabled: bool):
    if enabled:
        input("[Press Enter to continue...]")


def main():
    parser = argparse.ArgumentParser(description='Contract checker breaking-change demo')
    parser.add_argument('--baseline', default='workspace/contracts/user-service/1.0.0.yaml',
                        help='Where to record the 1.0.0 baseline')
    parser.add_argument('--output-format', choices=['auto', 'rich', 'plain', 'json'], default='auto',
                        help='Output format (default: auto)')
    parser.add_argument('--interactive', action='store_true', help='Pause between steps')
    parser.add_argument('--no-uv', action='store_true', help='Use the current interpreter instead of uv')
    args = parser.parse_args()

    repo_root = Path(__file__).resolve().parent.parent
    os.chdir(repo_root)

    env = os.environ.copy()
    env['CONSOLE_OUTPUT_FORMAT'] = args.output_format
    env['PYTHONPATH'] = os.pathsep.join([
        str(repo_root / 'apps' / 'contract-checker'),
        str(repo_root / 'apps' / 'sample-library'),
    ])
    use_uv = not args.no_uv

    v1_target = 'sample_library.service:UserService'
    v2_target = 'sample_library.service_v2:UserService'

    try:
        logger.narrator("The library team publishes UserService 1.0.0 and records its contract.")
        if run_checker(['snapshot', '--target', v1_target, '--output', args.baseline], repo_root, env, use_uv) != 0:
            raise RuntimeError("Recording the baseline failed")
        pause(args.interactive)

        logger.narrator("The consumer checks the unchanged library against the contract.")
        if run_checker(['check', '--baseline', args.baseline, '--target', v1_target], repo_root, env, use_uv) != 0:
            raise RuntimeError("The unchanged library should honour its own contract")
        logger.success("Contract holds for 1.0.0")
        pause(args.interactive)

        logger.narrator("Version 2.0.0 changes find_by_id(int) -> User to find_by_id(str) -> Optional[User].")
        exit_code = run_checker(['check', '--baseline', args.baseline, '--target', v2_target], repo_root, env, use_uv)
        if exit_code == 0:
            raise RuntimeError("The breaking change went undetected")
        logger.success(f"Breaking change detected (exit code {exit_code}); the consumer build would stop here")

        logger.success("\n=== Demo Completed ===")
    except KeyboardInterrupt:
        logger.warning("\nDemo interrupted by user")
        sys.exit(130)
    except RuntimeError as e:
        logger.error("\n=== Demo Failed ===")
        logger.error(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
