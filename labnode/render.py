"""Startup-config rendering.

Each kind ships a Jinja2 template under ``labnode/templates``. Rendering is a
two-phase write: the template output replaces the file, then the user's
startup-config fragment (if any) is appended after a newline. User content can
therefore extend the templated sections but never precede them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined
from jinja2 import TemplateError as JinjaTemplateError

from labnode.errors import FilesystemError, TemplateError
from labnode.types import NodeConfig

logger = logging.getLogger(__name__)


# Loaded once per process; templates are immutable package data.
_env = Environment(
    loader=PackageLoader("labnode", "templates"),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def template_name(kind: str) -> str:
    """Template file for a kind (e.g. "xrd" -> "xrd.conf.j2")."""
    return f"{kind}.conf.j2"


def config_filename(kind: str) -> str:
    return f"{kind}.conf"


def render_template(
    node: str,
    name: str,
    context: dict[str, Any],
    env: Environment | None = None,
) -> str:
    """Render a template, converting every Jinja2 failure to TemplateError.

    Unresolved placeholders fail because the environment uses StrictUndefined.
    """
    env = env or _env
    try:
        return env.get_template(name).render(context)
    except JinjaTemplateError as e:
        raise TemplateError(node, f"cannot render {name}: {e}") from e


def generate_config(
    cfg: NodeConfig,
    dest: str | Path,
    name: str,
    extra: dict[str, Any] | None = None,
) -> str:
    """Render a template for cfg and write it to dest (truncate and write)."""
    context = cfg.template_context()
    if extra:
        context.update(extra)
    rendered = render_template(cfg.short_name, name, context)

    try:
        Path(dest).write_text(rendered, encoding="utf-8")
    except OSError as e:
        raise FilesystemError(cfg.short_name, f"cannot write {dest}: {e}", path=str(dest)) from e

    logger.debug(f"Rendered {name} to {dest}", extra={"node": cfg.short_name})
    return rendered


def append_startup_config(cfg: NodeConfig, dest: str | Path) -> None:
    """Append the user's startup-config fragment to dest, newline-separated.

    The fragment is copied verbatim. Nothing is done when the node has no
    fragment.
    """
    if not cfg.has_startup_config:
        return

    source = Path(cfg.startup_config)
    try:
        fragment = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FilesystemError(
            cfg.short_name, f"cannot read startup-config {source}: {e}", path=str(source)
        ) from e

    try:
        with open(dest, "a", encoding="utf-8") as f:
            f.write("\n")
            f.write(fragment)
    except OSError as e:
        raise FilesystemError(cfg.short_name, f"cannot append to {dest}: {e}", path=str(dest)) from e

    logger.debug(f"Appended startup-config {source} to {dest}", extra={"node": cfg.short_name})


def write_startup_config(
    cfg: NodeConfig,
    kind: str,
    extra: dict[str, Any] | None = None,
) -> Path:
    """Materialize the node's startup config inside its lab directory.

    The file is <lab_dir>/<kind>.conf. Sets cfg.res_startup_config and
    cfg.enforce_startup_config, renders the kind template, then appends the
    user fragment.
    """
    dest = cfg.lab_path(config_filename(kind))
    cfg.res_startup_config = str(dest)
    cfg.enforce_startup_config = True

    generate_config(cfg, dest, template_name(kind), extra=extra)
    append_startup_config(cfg, dest)
    return dest
