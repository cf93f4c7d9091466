# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Daemon configuration.

The configuration is assembled from partial configurations, each provided
by a different source (the environment, a configuration file, the built-in
defaults). A value is taken from the first partial configuration that
defines it, in the order the partial configurations were added to the
ConfigBuilder.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from os import PathLike
from typing import ClassVar, Self

from lxml import etree

__all__ = (  # noqa: RUF022
    'ConfigSource',
    'ConfigurationError',
    'PartialConfig',
    'EnvVarConfig',
    'XMLFileConfig',
    'DefaultConfig',
    'Config',
    'ConfigBuilder',
)


STATE_DIR_ENV = 'SPLINTER_STATE_DIR'
CERT_DIR_ENV = 'SPLINTER_CERT_DIR'

DEFAULT_STATE_DIR = '/var/lib/splinter'
DEFAULT_CERT_DIR = '/etc/splinter/certs'


class ConfigSource(StrEnum):
    Default = 'default'
    Environment = 'environment'
    File = 'file'


class ConfigurationError(Exception):
    """Raised when the configuration cannot be loaded or is incomplete."""


@dataclass(frozen=True, slots=True)
class PartialConfig:
    """The configuration values provided by a single source"""

    source: ConfigSource
    state_dir: str | None = None
    cert_dir: str | None = None

    def with_state_dir(self, state_dir: str | None) -> Self:
        return replace(self, state_dir=state_dir)

    def with_cert_dir(self, cert_dir: str | None) -> Self:
        return replace(self, cert_dir=cert_dir)


class EnvVarConfig:
    """Holds configuration values defined as environment variables."""

    def __init__(self, environ: Mapping[str, str] = os.environ) -> None:
        self.state_dir = environ.get(STATE_DIR_ENV)
        self.cert_dir = environ.get(CERT_DIR_ENV)

    def build(self) -> PartialConfig:
        return PartialConfig(ConfigSource.Environment).with_cert_dir(self.cert_dir).with_state_dir(self.state_dir)


class XMLFileConfig:
    """
    Holds configuration values read from an XML configuration file.

    <splinterd>
      <state-dir>/var/lib/splinter</state-dir>
      <cert-dir>/etc/splinter/certs</cert-dir>
    </splinterd>

    Both elements are optional. Empty elements are treated as missing.
    """

    root_tag: ClassVar[str] = 'splinterd'

    _state_dir_xpath: ClassVar = etree.XPath('string(state-dir)')
    _cert_dir_xpath: ClassVar = etree.XPath('string(cert-dir)')

    def __init__(self, *, state_dir: str | None = None, cert_dir: str | None = None) -> None:
        self.state_dir = state_dir
        self.cert_dir = cert_dir

    @classmethod
    def from_xml(cls, element: etree._Element) -> Self:  # noqa: SLF001
        if element.tag != cls.root_tag:
            raise ConfigurationError(f'The configuration root element must be {cls.root_tag!r}, not {element.tag!r}')
        return cls(state_dir=cls._state_dir_xpath(element).strip() or None, cert_dir=cls._cert_dir_xpath(element).strip() or None)

    @classmethod
    def from_string(cls, data: str | bytes) -> Self:
        try:
            element = etree.fromstring(data.encode() if isinstance(data, str) else data)  # noqa: S320
        except etree.XMLSyntaxError as exc:
            raise ConfigurationError(f'Invalid configuration: {exc}') from exc
        return cls.from_xml(element)

    @classmethod
    def from_file(cls, path: str | PathLike[str]) -> Self:
        try:
            document = etree.parse(os.fspath(path))  # noqa: S320
        except OSError as exc:
            raise ConfigurationError(f'Cannot read configuration file {os.fspath(path)!r}: {exc}') from exc
        except etree.XMLSyntaxError as exc:
            raise ConfigurationError(f'Invalid configuration file {os.fspath(path)!r}: {exc}') from exc
        return cls.from_xml(document.getroot())

    def build(self) -> PartialConfig:
        return PartialConfig(ConfigSource.File, state_dir=self.state_dir, cert_dir=self.cert_dir)


class DefaultConfig:
    """Holds the built-in configuration values."""

    def build(self) -> PartialConfig:
        return PartialConfig(ConfigSource.Default, state_dir=DEFAULT_STATE_DIR, cert_dir=DEFAULT_CERT_DIR)


@dataclass(frozen=True, slots=True)
class Config:
    state_dir: str
    cert_dir: str
    sources: Mapping[str, ConfigSource] = field(default_factory=dict, compare=False)

    def source_of(self, name: str) -> ConfigSource:
        return self.sources[name]


class ConfigBuilder:
    def __init__(self) -> None:
        self._partial_configs: list[PartialConfig] = []

    def with_partial_config(self, partial_config: PartialConfig) -> Self:
        self._partial_configs.append(partial_config)
        return self

    def build(self) -> Config:
        values: dict[str, str] = {}
        sources: dict[str, ConfigSource] = {}
        for name in (f.name for f in fields(PartialConfig) if f.name != 'source'):
            for partial_config in self._partial_configs:
                value = getattr(partial_config, name)
                if value is not None:
                    values[name] = value
                    sources[name] = partial_config.source
                    break
            else:
                raise ConfigurationError(f'No value was provided for {name!r}')
        return Config(**values, sources=sources)
