"""
Packument models.

A packument is the registry document describing every published version of
a package. The full document comes back for ``Accept: application/json``;
the abbreviated "corgi" document (``application/vnd.npm.install-v1+json``)
keeps only the fields an installer needs.

Mappings keep the order the registry sent them in, and unknown fields are
kept in ``extra`` so nothing is lost on a round trip.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _str_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Dist:
    """Distribution info for one published version."""

    tarball: str | None = None
    shasum: str | None = None
    integrity: str | None = None
    file_count: int | None = None
    unpacked_size: int | None = None
    signatures: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("tarball", "shasum", "integrity", "fileCount", "unpackedSize", "signatures")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Dist:
        if data is None:
            data = {}
        elif not isinstance(data, dict):
            raise ValueError("version 'dist' must be an object")
        signatures = data.get("signatures")
        return cls(
            tarball=data.get("tarball"),
            shasum=data.get("shasum"),
            integrity=data.get("integrity"),
            file_count=_optional_int(data.get("fileCount")),
            unpacked_size=_optional_int(data.get("unpackedSize")),
            signatures=list(signatures) if isinstance(signatures, list) else [],
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.tarball is not None:
            d["tarball"] = self.tarball
        if self.shasum is not None:
            d["shasum"] = self.shasum
        if self.integrity is not None:
            d["integrity"] = self.integrity
        if self.file_count is not None:
            d["fileCount"] = self.file_count
        if self.unpacked_size is not None:
            d["unpackedSize"] = self.unpacked_size
        if self.signatures:
            d["signatures"] = list(self.signatures)
        d.update(self.extra)
        return d


@dataclass
class VersionMetadata:
    """Metadata for one published version, as found in a packument."""

    name: str
    version: str
    dist: Dist = field(default_factory=Dist)
    deprecated: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    optional_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies_meta: dict[str, dict[str, Any]] = field(default_factory=dict)
    bin: dict[str, str] = field(default_factory=dict)
    engines: dict[str, str] = field(default_factory=dict)
    os: list[str] = field(default_factory=list)
    cpu: list[str] = field(default_factory=list)
    has_install_script: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = {
        "dependencies": "dependencies",
        "devDependencies": "dev_dependencies",
        "optionalDependencies": "optional_dependencies",
        "peerDependencies": "peer_dependencies",
        "engines": "engines",
    }
    _KNOWN = (
        "name",
        "version",
        "dist",
        "deprecated",
        "peerDependenciesMeta",
        "bin",
        "os",
        "cpu",
        "hasInstallScript",
        *_FIELDS,
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, name: str = "", version: str = "") -> VersionMetadata:
        if not isinstance(data, dict):
            raise ValueError(f"version {version!r} must be an object")
        deprecated = data.get("deprecated")
        if deprecated is not None and not isinstance(deprecated, str):
            # Some publishers set `deprecated: true`.
            deprecated = "" if deprecated is True else None

        bin_field = data.get("bin")
        if isinstance(bin_field, str):
            # A bare string means a single binary named after the package.
            bin_name = str(data.get("name") or name).split("/")[-1]
            bin_map = {bin_name: bin_field}
        else:
            bin_map = _str_map(bin_field)

        meta = data.get("peerDependenciesMeta")
        return cls(
            name=str(data.get("name") or name),
            version=str(data.get("version") or version),
            dist=Dist.from_dict(data.get("dist")),
            deprecated=deprecated,
            peer_dependencies_meta=dict(meta) if isinstance(meta, dict) else {},
            bin=bin_map,
            os=_str_list(data.get("os")),
            cpu=_str_list(data.get("cpu")),
            has_install_script=bool(data.get("hasInstallScript", False)),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
            **{attr: _str_map(data.get(key)) for key, attr in cls._FIELDS.items()},
        )

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated is not None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "version": self.version}
        for key, attr in self._FIELDS.items():
            value = getattr(self, attr)
            if value:
                d[key] = dict(value)
        if self.peer_dependencies_meta:
            d["peerDependenciesMeta"] = dict(self.peer_dependencies_meta)
        if self.bin:
            d["bin"] = dict(self.bin)
        if self.os:
            d["os"] = list(self.os)
        if self.cpu:
            d["cpu"] = list(self.cpu)
        if self.deprecated is not None:
            d["deprecated"] = self.deprecated
        if self.has_install_script:
            d["hasInstallScript"] = True
        d["dist"] = self.dist.to_dict()
        d.update(self.extra)
        return d


@dataclass
class Packument:
    """Full packument document."""

    name: str
    versions: dict[str, VersionMetadata] = field(default_factory=dict)
    dist_tags: dict[str, str] = field(default_factory=dict)
    time: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("name", "versions", "dist-tags", "time")

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, name: str = "") -> Packument:
        if not isinstance(data, dict):
            raise ValueError("packument must be a JSON object")
        pkg_name = str(data.get("name") or name)
        raw_versions = data.get("versions") or {}
        if not isinstance(raw_versions, dict):
            raise ValueError("packument 'versions' must be an object")
        versions = {
            str(v): VersionMetadata.from_dict({} if meta is None else meta, name=pkg_name, version=str(v))
            for v, meta in raw_versions.items()
        }
        return cls(
            name=pkg_name,
            versions=versions,
            dist_tags=_str_map(data.get("dist-tags")),
            time=_str_map(data.get("time")),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def tag(self, name: str) -> VersionMetadata | None:
        """Version metadata a dist-tag points at."""
        version = self.dist_tags.get(name)
        return self.versions.get(version) if version else None

    @property
    def latest(self) -> VersionMetadata | None:
        return self.tag("latest")

    def version(self, version: str) -> VersionMetadata | None:
        return self.versions.get(version)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "dist-tags": dict(self.dist_tags),
            "versions": {v: meta.to_dict() for v, meta in self.versions.items()},
        }
        if self.time:
            d["time"] = dict(self.time)
        d.update(self.extra)
        return d


@dataclass
class CorgiPackument(Packument):
    """Abbreviated packument served for the install-v1 media type."""

    modified: str | None = None

    _KNOWN = ("name", "versions", "dist-tags", "time", "modified")

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, name: str = "") -> CorgiPackument:
        base = Packument.from_dict(data, name=name)
        return cls(
            name=base.name,
            versions=base.versions,
            dist_tags=base.dist_tags,
            time=base.time,
            modified=data.get("modified"),
            extra={k: v for k, v in data.items() if k not in cls._KNOWN},
        )

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        if self.modified is not None:
            d["modified"] = self.modified
        return d


__all__ = ["Dist", "VersionMetadata", "Packument", "CorgiPackument"]
