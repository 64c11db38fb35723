"""Configuration management for unmangle."""

from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Load .env from multiple locations
# 1. Current working directory
load_dotenv()
# 2. Project directory (where this package is installed)
_package_dir = Path(__file__).parent
load_dotenv(_package_dir.parent / ".env")
# 3. Home directory config
load_dotenv(Path.home() / ".config" / "unmangle" / ".env")


class Config(BaseSettings):
    """Configuration for unmangle."""

    # Output Settings
    output_dir: Path = Field(default=Path("out"), description="Output directory for processed files")
    force: bool = Field(default=False, description="Overwrite a non-empty output directory")
    format_output: bool = Field(default=False, description="Run the beautify rule after the rewrite rules")

    # Processing Settings
    concurrency: int = Field(default=4, ge=1, description="Number of files processed at once")
    rules: Optional[list[str]] = Field(default=None, description="Rule names to run, in order (default: all)")
    skip_patterns: list[str] = Field(
        default_factory=lambda: ["node_modules"],
        description="Path fragments of input files to skip",
    )

    # Rule Settings
    jsx_pragma: Optional[str] = Field(default=None, description="Element factory name to look for")
    jsx_pragma_frag: Optional[str] = Field(default=None, description="Fragment name to look for")
    jsx_host_objects: list[str] = Field(
        default_factory=lambda: ["document"],
        description="Objects whose createElement calls are never treated as JSX",
    )
    babel_helper_sources: Optional[list[str]] = Field(
        default=None,
        description="Module names the Babel extends helper is loaded from",
    )

    # Diagnostics
    perf: bool = Field(default=False, description="Report time spent per rule")
    debug_log_file: Optional[Path] = Field(default=None, description="Debug log file path")

    model_config = {
        "env_prefix": "UNMANGLE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("rules", mode="before")
    @classmethod
    def split_rules(cls, v: Any) -> Any:
        """Accept a comma separated rule list."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()] or None
        return v

    def rule_params(self) -> dict[str, Any]:
        """Parameters shared by every rule of a run."""
        params: dict[str, Any] = {"hostObjects": list(self.jsx_host_objects)}
        if self.jsx_pragma:
            params["pragma"] = self.jsx_pragma
        if self.jsx_pragma_frag:
            params["pragmaFrag"] = self.jsx_pragma_frag
        if self.babel_helper_sources:
            params["helperSources"] = list(self.babel_helper_sources)
        return params
