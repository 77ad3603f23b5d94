"""Pydantic models for the node-extractor YAML configuration."""

from pydantic import BaseModel, Field


class RegistryConfig(BaseModel):
    """Package registry configuration."""

    url: str = Field(
        default="https://registry.npmjs.org",
        description="Base URL of the npm-compatible package registry",
    )
    timeout: float = Field(default=60.0, description="HTTP request timeout in seconds", gt=0)


class StagingConfig(BaseModel):
    """Package staging and dependency installation."""

    temp_dir: str | None = Field(
        default=None,
        description="Parent directory for per-run working directories (system temp if unset)",
    )
    core_packages: list[str] = Field(
        default=["n8n-workflow", "n8n-core"],
        description="Platform runtime packages always installed next to a node pack",
    )
    python: str | None = Field(
        default=None,
        description="Interpreter used to run pip (current interpreter if unset)",
    )
    pip_args: list[str] = Field(
        default_factory=lambda: ["--disable-pip-version-check", "--quiet"],
        description="Extra arguments passed to 'pip install'",
    )
    site_packages_dir: str = Field(
        default="site-packages",
        description="Name of the dependency directory created inside a staged package",
    )


class LoaderConfig(BaseModel):
    """Plugin module loading."""

    timeout: float = Field(default=10.0, description="Module import timeout in seconds", gt=0)
    source_suffix: str = Field(default=".py", description="Source module extension")
    compiled_suffix: str = Field(default=".pyc", description="Compiled module extension")
    source_dir: str = Field(default="src", description="Source directory segment")
    build_dirs: list[str] = Field(
        default=["dist", "lib"],
        description="Alternate build-output directories tried in place of source_dir",
    )


class NamingConfig(BaseModel):
    """Node name and icon URL normalization."""

    namespace_prefix: str = Field(
        default="n8n-nodes",
        description="Prefix of generated node names (<prefix>-<package>.<node>)",
    )
    strip_prefix: str = Field(
        default="n8n-nodes-",
        description="Conventional package-name prefix removed from the package id",
    )
    icon_root: str = Field(default="icons", description="Root segment of generated icon URLs")


class OutputConfig(BaseModel):
    """Result output."""

    directory: str = Field(default=".", description="Directory the JSON artifact is written to")
    multi_filename: str = Field(
        default="multiple-packages.json",
        description="File name used for multi-package results",
    )
    webhook_timeout: float = Field(default=30.0, description="Webhook POST timeout", gt=0)


class ExtractorConfig(BaseModel):
    """Root configuration model."""

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    naming: NamingConfig = Field(default_factory=NamingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    verbose: bool = Field(default=False, description="Log per-module progress")
