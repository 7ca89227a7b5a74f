#!/usr/bin/env python3
"""
Command line tool for the application manifest.

Usage:
    sentiment-analysis validate
    sentiment-analysis routes
    sentiment-analysis variables
    sentiment-analysis build [--component ui]
    sentiment-analysis fetch [--cache-dir .artifacts]
    sentiment-analysis serve [--port 3000] [--reload]
    sentiment-analysis push-variables --env-file .env.dev [--dry-run]
"""

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import boto3
import requests
from dotenv import dotenv_values, load_dotenv

from app.config import Config, DEFAULT_PARAMETER_PREFIX
from manifest import ApplicationManifest, ManifestError, RouteTable, load_manifest
from manifest.artifacts import DigestMismatchError, fetch_artifact
from manifest.variables import missing_variables

logger = logging.getLogger(__name__)

SENSITIVE_KEYWORDS = ("password", "secret", "token", "credential", "api_key")


def _load(args) -> ApplicationManifest:
    return load_manifest(args.manifest)


def cmd_validate(args) -> int:
    """Validate the manifest and check required variables have values."""
    manifest = _load(args)
    print(f"✅ Manifest OK: {manifest.application.name} {manifest.application.version}")
    print(f"   {len(manifest.components)} components, {len(manifest.triggers)} routes")

    missing = missing_variables(manifest, Config(use_local=args.local))
    if missing:
        print(f"❌ Required variables without a value: {', '.join(missing)}")
        return 1
    return 0


def cmd_routes(args) -> int:
    """Print the route table in match order."""
    manifest = _load(args)
    table = RouteTable(manifest.triggers)
    width = max((len(trigger.route) for _, trigger in table.ordered()), default=0)
    for _, trigger in table.ordered():
        print(f"{trigger.route.ljust(width)}  ->  {trigger.component}")
    return 0


def cmd_variables(args) -> int:
    """Print every variable and whether it resolves."""
    manifest = _load(args)
    config = Config(use_local=args.local)

    for name, variable in sorted(manifest.variables.items()):
        value = config.get_variable(name)
        if value is None:
            value = variable.default
        kind = "required" if variable.required else "default"
        if value is None:
            status = "MISSING"
        elif variable.secret:
            status = "set (secret)"
        else:
            status = f"= {value}"
        print(f"{name} [{kind}] {status}")
    return 0


def cmd_build(args) -> int:
    """Run component build commands in manifest order."""
    manifest = _load(args)
    base_dir = Path(manifest.base_dir)

    for component in manifest.components.values():
        if args.component and component.id not in args.component:
            continue
        if not component.build or not component.build.command.strip():
            print(f"⏭️  {component.id}: nothing to build")
            continue

        workdir = base_dir / (component.build.workdir or ".")
        print(f"🔨 {component.id}: {component.build.command}")
        result = subprocess.run(component.build.command, shell=True, cwd=workdir)
        if result.returncode != 0:
            print(f"❌ Build failed for {component.id} (exit code {result.returncode})")
            return result.returncode

    print("🎉 Build complete")
    return 0


def cmd_fetch(args) -> int:
    """Download and verify every remote component source."""
    manifest = _load(args)
    remote = [c for c in manifest.components.values() if c.is_remote]
    if not remote:
        print("No remote components")
        return 0

    errors = 0
    for component in remote:
        try:
            path = fetch_artifact(component.source, args.cache_dir)
            print(f"✅ {component.id}: {path}")
        except (DigestMismatchError, requests.RequestException) as e:
            print(f"❌ {component.id}: {e}")
            errors += 1
    return 1 if errors else 0


def cmd_serve(args) -> int:
    """Serve the application locally with uvicorn."""
    import uvicorn

    os.environ["MANIFEST_PATH"] = str(args.manifest)
    uvicorn.run("main:create_app", factory=True, host=args.host, port=args.port, reload=args.reload)
    return 0


def is_sensitive(name: str, secret: bool) -> bool:
    return secret or any(keyword in name.lower() for keyword in SENSITIVE_KEYWORDS)


def cmd_push_variables(args) -> int:
    """Upload manifest variables from an env file to Parameter Store."""
    manifest = _load(args)
    env_file = Path(args.env_file)
    if not env_file.exists():
        print(f"❌ Error: {env_file} not found")
        return 1

    env_vars = dotenv_values(env_file)
    ssm = None if args.dry_run else boto3.client("ssm")
    prefix = args.prefix.rstrip("/")

    uploaded = skipped = errors = 0
    for name, variable in sorted(manifest.variables.items()):
        key = name.upper()
        value = env_vars.get(key)
        param_path = f"{prefix}/{key}"

        if not value:
            print(f"⏭️  Skipping {param_path} (not set in {env_file})")
            skipped += 1
            continue

        sensitive = is_sensitive(name, variable.secret)
        display_value = "***" if sensitive else value

        if args.dry_run:
            print(f"🔍 [DRY RUN] Would upload: {param_path} = {display_value}")
            uploaded += 1
            continue

        try:
            ssm.put_parameter(
                Name=param_path,
                Value=value,
                Type="SecureString" if sensitive else "String",
                Overwrite=True,
                Description=f"Manifest variable {name}",
            )
            print(f"✅ Uploaded: {param_path} = {display_value}")
            uploaded += 1
        except Exception as e:
            print(f"❌ Error uploading {param_path}: {e}")
            errors += 1

    print(f"📊 Uploaded: {uploaded}, skipped: {skipped}, errors: {errors}")
    return 1 if errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sentiment-analysis", description="Manifest tooling")
    parser.add_argument(
        "-f", "--manifest",
        default=os.getenv("MANIFEST_PATH", "manifest.toml"),
        help="Path to the manifest (default: manifest.toml)",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        default=None,
        help="Read variables from the environment only, never Parameter Store",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("validate", help="Validate the manifest").set_defaults(func=cmd_validate)
    subparsers.add_parser("routes", help="Show the route table").set_defaults(func=cmd_routes)
    subparsers.add_parser("variables", help="Show variable status").set_defaults(func=cmd_variables)

    build = subparsers.add_parser("build", help="Run component build commands")
    build.add_argument("-c", "--component", action="append", help="Only build this component (repeatable)")
    build.set_defaults(func=cmd_build)

    fetch = subparsers.add_parser("fetch", help="Fetch remote component artifacts")
    fetch.add_argument("--cache-dir", default=".artifacts", help="Artifact cache directory")
    fetch.set_defaults(func=cmd_fetch)

    serve = subparsers.add_parser("serve", help="Run the application locally")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    push = subparsers.add_parser("push-variables", help="Upload variables to Parameter Store")
    push.add_argument("--env-file", default=".env", help="Env file holding the values")
    push.add_argument("--prefix", default=DEFAULT_PARAMETER_PREFIX, help="Parameter Store prefix")
    push.add_argument("--dry-run", action="store_true", help="Print what would be uploaded")
    push.set_defaults(func=cmd_push_variables)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    logging.basicConfig(level=logging.WARNING)
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except ManifestError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
