"""
Verification script generation.

Renders the packaged Jinja2 template with a typed binding set and writes
the result as an executable, standalone shell script. The template's
referenced names are checked against the bindings before rendering so an
incomplete binding set fails with the list of missing names.
"""

import logging
import os
import shlex
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, meta

from .errors import UnresolvedPlaceholderError
from .models import ArtifactBindings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "test_cross_account_access.sh.j2"
TEST_SCRIPT_NAME = "test_cross_account_access.sh"


class TestArtifactGenerator:
    """Renders and writes the cross-account verification script."""

    __test__ = False  # not a pytest test class

    def __init__(self, template_dir: Path = TEMPLATE_DIR, template_name: str = TEMPLATE_NAME):
        self.template_name = template_name
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.env.filters["shell_quote"] = shlex.quote

    def placeholders(self, template_source: str) -> set[str]:
        """Names referenced by a template."""
        return meta.find_undeclared_variables(self.env.parse(template_source))

    def render(self, template_source: str, bindings: Mapping[str, Any]) -> str:
        """
        Substitute every placeholder in ``template_source`` from ``bindings``.

        Raises:
            UnresolvedPlaceholderError: If a referenced name has no binding,
                or its binding is empty.
        """
        missing = [
            name
            for name in self.placeholders(template_source)
            if name not in bindings or bindings[name] in (None, "")
        ]
        if missing:
            raise UnresolvedPlaceholderError(missing)

        try:
            return self.env.from_string(template_source).render(**bindings)
        except TemplateError as e:
            raise UnresolvedPlaceholderError([str(e)]) from e

    def load_template(self) -> str:
        source, _, _ = self.env.loader.get_source(self.env, self.template_name)
        return source

    def generate(self, bindings: ArtifactBindings, path: Path) -> Path:
        """Render the packaged template and write it to ``path``."""
        text = self.render(self.load_template(), bindings.as_mapping())
        return write_executable(path, text)


def write_executable(path: Path, text: str) -> Path:
    """
    Atomically write ``text`` to ``path`` with mode 0755.

    The content goes to a temporary file in the same directory which
    replaces ``path`` only once fully written; on any failure the temporary
    file is removed and ``path`` is left untouched.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
            os.fchmod(handle.fileno(), 0o755)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Wrote %s", path)
    return path
