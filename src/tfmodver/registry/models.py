"""Module registry wire models and response schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Shape of GET /v1/modules/{ns}/{name}/{provider}/versions that the client relies on.
VERSIONS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["modules"],
    "properties": {
        "modules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["versions"],
                "properties": {
                    "source": {"type": "string"},
                    "versions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["version"],
                            "properties": {
                                "version": {"type": "string"},
                                "root": {
                                    "type": "object",
                                    "properties": {
                                        "providers": {
                                            "type": "array",
                                            "items": {
                                                "type": "object",
                                                "properties": {
                                                    "name": {"type": "string"},
                                                    "version": {"type": "string"},
                                                },
                                            },
                                        },
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}

# Shape of GET /v1/modules/{ns}/{name}/{provider}/{version}.
MODULE_INFO_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "source": {"type": "string"},
        "published_at": {"type": "string"},
    },
}


@dataclass
class ProviderRequirement:
    """A provider required by a module version's root module."""
    name: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderRequirement":
        return cls(name=data.get("name") or "", version=data.get("version") or "")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "version": self.version}


@dataclass
class RootModule:
    providers: List[ProviderRequirement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RootModule":
        data = data or {}
        return cls(providers=[ProviderRequirement.from_dict(p) for p in data.get("providers") or []])

    def to_dict(self) -> Dict[str, Any]:
        return {"providers": [p.to_dict() for p in self.providers]}


@dataclass
class ModuleInfo:
    """Registry metadata for one published module version."""
    source: str = ""
    published_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleInfo":
        return cls(source=data.get("source") or "", published_at=data.get("published_at") or "")

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "published_at": self.published_at}


@dataclass
class ModuleVersion:
    version: str
    root: RootModule = field(default_factory=RootModule)
    module_info: Optional[ModuleInfo] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleVersion":
        info = data.get("module_info")
        return cls(
            version=data["version"],
            root=RootModule.from_dict(data.get("root")),
            module_info=ModuleInfo.from_dict(info) if info else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"version": self.version, "root": self.root.to_dict()}
        if self.module_info is not None:
            out["module_info"] = self.module_info.to_dict()
        return out


@dataclass
class Module:
    """A registry module and all of its published versions."""
    source: str = ""
    versions: List[ModuleVersion] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Module":
        return cls(
            source=data.get("source") or "",
            versions=[ModuleVersion.from_dict(v) for v in data.get("versions") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "versions": [v.to_dict() for v in self.versions]}

    def version_strings(self) -> List[str]:
        return [v.version for v in self.versions]
