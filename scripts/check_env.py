"""Pre-flight check for the GitHub callback service configuration.

Run it before (re)starting the service:

* ``check`` loads ``AppSettings`` from the given ``.env`` file and prints the
  endpoints the callback will talk to, without echoing any secret.
* ``record`` does the same and stores a SHA256 baseline of the file.
* ``verify`` does the same and fails when the file no longer matches the
  baseline, which catches edits made outside a deploy.

Pass ``--require-github`` in production so missing OAuth app credentials fail
the check instead of only producing a warning::

    python -m scripts.check_env record --require-github \
        --env-file /srv/github-callback/.env \
        --hash-file /srv/github-callback/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


class MissingGitHubCredentials(Exception):
    """Raised when ``--require-github`` is set and the OAuth app is not configured."""


def _digest(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    if not env_file.exists():
        raise FileNotFoundError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]


def _describe(settings: AppSettings) -> None:
    print(f"environment:       {settings.environment}")
    print(f"github token url:  {settings.github.token_url}")
    print(f"github api base:   {settings.github.api_base}")
    print(f"platform token url: {settings.platform_auth.token_url}")
    print(f"internal api:      {settings.internal_api.api_host}")
    print(f"state signing:     {'on' if settings.security.oauth_state_secret else 'off'}")


def _warn(settings: AppSettings, *, require_github: bool) -> None:
    if not settings.github.is_configured:
        if require_github:
            raise MissingGitHubCredentials(
                "GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET are required."
            )
        print(
            "Warning: GITHUB_CLIENT_ID/GITHUB_CLIENT_SECRET are not set; "
            "GitHub callbacks will redirect with configuration_error.",
            file=sys.stderr,
        )
    if settings.platform_auth.disable_auth:
        print(
            "Warning: DISABLE_AUTH is enabled; the internal API will receive a "
            "placeholder token.",
            file=sys.stderr,
        )


def _record(env_file: Path, hash_file: Path) -> int:
    checksum = _digest(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded baseline {checksum} in {hash_file}")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"No baseline at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _digest(env_file)
    if expected != actual:
        print(
            f"{env_file} changed since the baseline was recorded "
            f"(expected {expected}, found {actual}).",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR

    print("Environment file matches baseline.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the GitHub callback configuration and detect .env drift."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, needs_hash, help_text in (
        ("check", False, "Validate settings only."),
        ("record", True, "Validate settings and write the checksum baseline."),
        ("verify", True, "Validate settings and compare against the baseline."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--env-file", default=".env", type=Path)
        command.add_argument(
            "--require-github",
            action="store_true",
            help="Fail when the GitHub OAuth app credentials are missing.",
        )
        if needs_hash:
            command.add_argument("--hash-file", required=True, type=Path)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
        _warn(settings, require_github=args.require_github)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except MissingGitHubCredentials as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    _describe(settings)

    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
