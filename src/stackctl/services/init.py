"""InitService — write a starter ``stackctl.toml`` for a new project."""

from __future__ import annotations

import logging
from pathlib import Path

from stackctl.config.discovery import CONFIG_FILENAME
from stackctl.config.models import WebAppConfig
from stackctl.infrastructure.templates import render_template
from stackctl.services.result import ServiceError, ServiceResult
from stackctl.topology import BUILTIN_TOPOLOGIES

logger = logging.getLogger(__name__)


class InitService:
    """Project scaffolding. Needs no workspace: the project doesn't exist yet."""

    @staticmethod
    def init_project(
        path: Path,
        *,
        deployment_id: str = "default",
        topology: str = "webapp",
        domain_name: str | None = None,
        parallelism: int = 1,
        force: bool = False,
    ) -> ServiceResult:
        """Create ``stackctl.toml`` and the ``.stackctl/`` directory under *path*."""
        config_file = path / CONFIG_FILENAME
        if config_file.exists() and not force:
            return ServiceResult(
                ok=False,
                op="init",
                error=ServiceError(
                    code="ALREADY_EXISTS",
                    message=f"{config_file} already exists (use --force to overwrite)",
                    detail={"path": str(config_file)},
                ),
            )

        warnings: list[str] = []
        if topology not in BUILTIN_TOPOLOGIES and ":" not in topology:
            warnings.append(f"Topology '{topology}' is not a builtin or a module:function path")

        defaults = WebAppConfig()
        rendered = render_template(
            "config",
            "stackctl.toml.j2",
            project_root=path,
            deployment_id=deployment_id,
            topology=topology,
            parallelism=parallelism,
            name_prefix=defaults.name_prefix,
            domain_name=domain_name or defaults.domain_name,
            record_name=defaults.record_name,
            management_cidr=defaults.management_cidr,
            key_name=defaults.key_name,
        )

        path.mkdir(parents=True, exist_ok=True)
        config_file.write_text(rendered, encoding="utf-8")
        plugin_dir = path / ".stackctl" / "plugins"
        plugin_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Wrote %s", config_file)

        return ServiceResult(
            ok=True,
            op="init",
            data={
                "path": str(config_file),
                "deployment_id": deployment_id,
                "topology": topology,
            },
            warnings=warnings,
        )
