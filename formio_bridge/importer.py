"""Import form definitions from JSON files into a Form.io instance.

Each ``*.json`` file in the forms directory holds one form definition. Files
are validated, then created through the REST API with an admin token. Forms
whose name or path already exists on the server are skipped.

Example:
    formio-import --url http://localhost:3001 --forms-dir infra/sample-forms
"""

import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import click
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from formio_bridge.client import FormioClient
from formio_bridge.config import get_settings
from formio_bridge.errors import FormioError, ParseError
from formio_bridge.models import FormDefinition

logger = logging.getLogger(__name__)

FORM_FILE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "path": {"type": "string"},
        "components": {"type": "array"},
    },
    "required": ["title", "name", "components"],
}

_FORM_FILE_VALIDATOR = Draft7Validator(FORM_FILE_SCHEMA)


@dataclass
class ImportResult:
    """Outcome for one form file.

    ``skipped`` results count as successful: the form is already available.
    """
    file: str
    success: bool
    form: Optional[FormDefinition] = None
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class ImportSummary:
    results: List[ImportResult] = field(default_factory=list)

    @property
    def successful(self) -> List[ImportResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ImportResult]:
        return [r for r in self.results if not r.success]


def load_form_file(path: Path) -> Dict[str, Any]:
    """Read and validate one form definition file.

    Raises:
        ParseError: If the file is not JSON or lacks title, name or components
    """
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"{path.name} is not valid JSON: {exc}", raw=text) from exc

    error = best_match(_FORM_FILE_VALIDATOR.iter_errors(data))
    if error is not None:
        raise ParseError(
            f"Invalid form JSON in {path.name}: {error.message} "
            "(required fields: title, name, components)",
            raw=text,
        )
    return data


def find_form_files(forms_dir: Path) -> List[Path]:
    return sorted(p for p in forms_dir.iterdir() if p.suffix == ".json" and p.is_file())


async def fetch_existing(client: FormioClient) -> Set[str]:
    """Names and paths of the forms already on the server."""
    try:
        forms = await client.list_forms()
    except FormioError as exc:
        logger.warning("Could not fetch existing forms: %s", exc.message)
        return set()
    taken = set()
    for form in forms:
        taken.update(v for v in (form.name, form.path) if v)
    return taken


async def import_form(
    client: FormioClient, path: Path, existing: Set[str]
) -> ImportResult:
    """Load one file and create its form unless it already exists.

    ``existing`` is updated with the created form's name and path.
    """
    try:
        data = load_form_file(path)
    except (OSError, ParseError) as exc:
        message = exc.message if isinstance(exc, ParseError) else str(exc)
        return ImportResult(file=path.name, success=False, error=message)

    if data["name"] in existing or data.get("path") in existing:
        logger.info("Form %r already exists; skipping", data["title"])
        return ImportResult(file=path.name, success=True, skipped=True)

    try:
        form = await client.create_form(data)
    except FormioError as exc:
        return ImportResult(file=path.name, success=False, error=exc.message)

    existing.update(v for v in (form.name, form.path) if v)
    return ImportResult(file=path.name, success=True, form=form)


async def run_import(
    client: FormioClient,
    forms_dir: Path,
    email: str,
    password: str,
) -> int:
    """Check the server, log in as admin and import every form file.

    Returns:
        Process exit code: 1 when the server is unreachable or login fails
    """
    click.echo("Checking Form.io server connection...")
    try:
        await client.list_forms()
    except FormioError as exc:
        click.echo(f"❌ Cannot connect to Form.io server at {client.base_url}: {exc.message}")
        return 1
    click.echo("✓ Form.io server is accessible")

    try:
        await client.login(email, password, admin=True)
    except FormioError as exc:
        click.echo(f"❌ Authentication failed: {exc.message}")
        return 1
    click.echo(f"✓ Authenticated as {email}")

    if not forms_dir.is_dir():
        click.echo(f"❌ Forms directory not found: {forms_dir}")
        return 1
    files = find_form_files(forms_dir)
    if not files:
        click.echo(f"⚠ No JSON form files found in {forms_dir}")
        return 0
    click.echo(f"Found {len(files)} form file(s) to import")

    existing = await fetch_existing(client)
    summary = ImportSummary()
    for path in files:
        result = await import_form(client, path, existing)
        summary.results.append(result)
        if result.skipped:
            click.echo(f"⚠ {path.name}: form already exists, skipped")
        elif result.success and result.form is not None:
            click.echo(f"✓ Imported {result.form.title}")
            click.echo(f"  Form ID: {result.form.id}")
            click.echo(f"  Form URL: {client.form_url(result.form.id)}")
        else:
            click.echo(f"❌ Failed to import {path.name}: {result.error}")

    click.echo("")
    click.echo("Import summary:")
    click.echo(f"✓ Successfully imported: {len(summary.successful)} forms")
    if summary.failed:
        click.echo(f"❌ Failed to import: {len(summary.failed)} forms")
        for result in summary.failed:
            click.echo(f"  - {result.file}: {result.error}")
    return 0


async def _main(url: str, forms_dir: Path, email: str, password: str) -> int:
    async with FormioClient(base_url=url) as client:
        return await run_import(client, forms_dir, email, password)


@click.command()
@click.option("--url", default=None, help="Form.io server URL (default: FORMIO_URL)")
@click.option(
    "--forms-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of form JSON files (default: FORMIO_FORMS_DIR)",
)
@click.option("--email", default=None, help="Admin email (default: FORMIO_ADMIN_EMAIL)")
@click.option("--password", default=None, help="Admin password (default: FORMIO_ADMIN_PASSWORD)")
@click.option("--verbose", "-v", is_flag=True, help="Log requests and responses")
def main(
    url: Optional[str],
    forms_dir: Optional[Path],
    email: Optional[str],
    password: Optional[str],
    verbose: bool,
):
    """Import form definitions from JSON files into Form.io.

    Example:
        FORMIO_URL=http://localhost:3001 formio-import --password secret
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = get_settings()
    password = password or settings.admin_password
    if password is None:
        password = click.prompt("Admin password", hide_input=True)

    code = asyncio.run(
        _main(
            url or settings.url,
            forms_dir or Path(settings.forms_dir),
            email or settings.admin_email,
            password,
        )
    )
    sys.exit(code)


__all__ = [
    "FORM_FILE_SCHEMA",
    "ImportResult",
    "ImportSummary",
    "load_form_file",
    "find_form_files",
    "fetch_existing",
    "import_form",
    "run_import",
    "main",
]
