"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, stackctl.toml only contains
overrides. Environment-specific values of the builtin topology (domain,
CIDR blocks, key names, sizing) live in ``[webapp]`` rather than in code.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- stackctl.toml sections ---


class DeploymentConfig(BaseModel):
    """[deployment] section."""

    model_config = {"frozen": True}

    id: str = "default"
    topology: str = "webapp"


class StateConfig(BaseModel):
    """[state] section."""

    model_config = {"frozen": True}

    path: str = ".stackctl/state.db"


class ApplyConfig(BaseModel):
    """[apply] section."""

    model_config = {"frozen": True}

    parallelism: int = Field(default=1, ge=1)


class RetryConfig(BaseModel):
    """[retry] section. ``max_attempts = 1`` disables retries."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=1, ge=1)
    backoff_multiplier: float = 1.0
    backoff_min: float = 1.0
    backoff_max: float = 30.0


class ProvidersConfig(BaseModel):
    """[providers] section."""

    model_config = {"frozen": True}

    simulated: bool = True
    simulated_path: str = ".stackctl/cloud.json"


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: str = ".stackctl/plugins"


_DEFAULT_USER_DATA = [
    'powershell -Command "Install-WindowsFeature -Name Web-Server,Web-Asp-Net45,'
    'Web-Net-Ext45,Web-ISAPI-Ext,Web-ISAPI-Filter,Web-Mgmt-Console,Web-Scripting-Tools"',
    'powershell -Command "New-Item -Path C:\\WebApp -ItemType Directory -Force"',
    'powershell -Command "New-WebAppPool -Name WebAppPool"',
    'powershell -Command "New-Website -Name WebApp -PhysicalPath C:\\WebApp '
    '-ApplicationPool WebAppPool -Port 80"',
    'powershell -Command "Install-PackageProvider -Name NuGet -MinimumVersion 2.8.5.201 -Force"',
    'powershell -Command "Install-Module -Name AWSPowerShell -Force"',
    'powershell -Command "Import-Module AWSPowerShell"',
    'powershell -Command "choco install awscli -y"',
    'powershell -Command "choco install cloudwatch-agent -y"',
]


class WebAppConfig(BaseModel):
    """[webapp] section: inputs of the builtin web-application topology."""

    model_config = {"frozen": True}

    name_prefix: str = "webapp"
    vpc_cidr: str = "10.0.0.0/16"
    max_azs: int = 2
    nat_gateways: int = 1
    management_cidr: str = "10.0.0.0/16"
    instance_type: str = "t3.medium"
    machine_image: str = "windows-server-2022-english-full-base"
    key_name: str = "web-server-key"
    domain_name: str = "example.com"
    record_name: str = "webapp"
    http_port: int = 80
    https_port: int = 443
    rdp_port: int = 3389
    health_check_path: str = "/"
    health_check_interval: int = 30
    health_check_timeout: int = 5
    healthy_http_codes: str = "200-299"
    dashboard_name: str = "WebApp-Monitoring-Dashboard"
    managed_policies: list[str] = Field(
        default_factory=lambda: ["AmazonSSMManagedInstanceCore", "CloudWatchAgentServerPolicy"]
    )
    user_data: list[str] = Field(default_factory=lambda: list(_DEFAULT_USER_DATA))

    @property
    def fqdn(self) -> str:
        return f"{self.record_name}.{self.domain_name}"
