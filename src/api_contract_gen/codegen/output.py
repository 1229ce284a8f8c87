"""Artifacts produced by a language backend."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

FILE_TYPES = ("test", "config", "build", "dependency", "setup", "documentation")


class GeneratedFile(BaseModel):
    path: str
    content: str
    type: str  # one of FILE_TYPES
    language: str
    description: str = ""


class Dependency(BaseModel):
    name: str
    version: str
    scope: str = "test"  # production / development / test
    manager: str
    description: str = ""


class ProjectStructure(BaseModel):
    root_dir: str = "."
    test_dir: str
    config_files: list[str] = []
    source_files: list[str] = []
    package_file: str
    build_file: str | None = None


class ProjectConfiguration(BaseModel):
    package_manager: str
    test_framework: str
    language: str
    version: str = "1.0.0"
    scripts: dict[str, str] = {}
    settings: dict[str, Any] = {}


class GeneratedOutput(BaseModel):
    """Everything one backend run produced. Regeneration replaces it wholesale."""

    files: list[GeneratedFile] = Field(default_factory=list)
    project_structure: ProjectStructure
    dependencies: list[Dependency] = Field(default_factory=list)
    setup_instructions: list[str] = Field(default_factory=list)
    configuration: ProjectConfiguration

    def file_map(self) -> dict[str, str]:
        """{path: content}, the shape the validators accept."""
        return {f.path: f.content for f in self.files}

    def get(self, path: str) -> GeneratedFile | None:
        return next((f for f in self.files if f.path == path), None)

    def write(self, output_dir: Path) -> list[Path]:
        """Write every file under output_dir, creating directories as needed."""
        written = []
        for generated in self.files:
            target = Path(output_dir) / generated.path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(generated.content, encoding="utf-8")
            written.append(target)
        return written
