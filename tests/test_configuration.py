# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from pathlib import Path

import pytest
from splinter.configuration import (
    Config,
    ConfigBuilder,
    ConfigSource,
    ConfigurationError,
    DefaultConfig,
    EnvVarConfig,
    PartialConfig,
    XMLFileConfig,
)

CONFIG_XML = """\
<?xml version="1.0" encoding="UTF-8"?>
<splinterd>
  <state-dir>/srv/splinter/state</state-dir>
  <cert-dir>
    /srv/splinter/certs
  </cert-dir>
</splinterd>
"""


class TestPartialConfig:

    def test_builder_methods(self) -> None:
        config = PartialConfig(ConfigSource.File)
        assert config.state_dir is None
        assert config.cert_dir is None

        updated = config.with_state_dir('/state').with_cert_dir('/certs')
        assert updated == PartialConfig(ConfigSource.File, state_dir='/state', cert_dir='/certs')
        assert config.state_dir is None  # the original is left untouched

    def test_environment(self) -> None:
        environ = {'SPLINTER_STATE_DIR': '/env/state', 'SPLINTER_CERT_DIR': '/env/certs', 'HOME': '/root'}
        config = EnvVarConfig(environ).build()
        assert config == PartialConfig(ConfigSource.Environment, state_dir='/env/state', cert_dir='/env/certs')

        config = EnvVarConfig({'SPLINTER_CERT_DIR': '/env/certs'}).build()
        assert config.source is ConfigSource.Environment
        assert config.state_dir is None
        assert config.cert_dir == '/env/certs'

    def test_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('SPLINTER_STATE_DIR', '/process/state')
        monkeypatch.delenv('SPLINTER_CERT_DIR', raising=False)
        config = EnvVarConfig().build()
        assert config.state_dir == '/process/state'
        assert config.cert_dir is None

    def test_defaults(self) -> None:
        config = DefaultConfig().build()
        assert config == PartialConfig(ConfigSource.Default, state_dir='/var/lib/splinter', cert_dir='/etc/splinter/certs')


class TestXMLFileConfig:

    def test_from_string(self) -> None:
        config = XMLFileConfig.from_string(CONFIG_XML).build()
        assert config == PartialConfig(ConfigSource.File, state_dir='/srv/splinter/state', cert_dir='/srv/splinter/certs')
        assert XMLFileConfig.from_string(CONFIG_XML.encode()).build() == config

    def test_missing_elements(self) -> None:
        config = XMLFileConfig.from_string('<splinterd><state-dir/></splinterd>').build()
        assert config.state_dir is None
        assert config.cert_dir is None

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / 'splinterd.xml'
        path.write_text(CONFIG_XML)
        config = XMLFileConfig.from_file(path).build()
        assert config.state_dir == '/srv/splinter/state'
        assert config.cert_dir == '/srv/splinter/certs'

    def test_errors(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match='Invalid configuration'):
            XMLFileConfig.from_string('<splinterd><state-dir></splinterd>')
        with pytest.raises(ConfigurationError, match="The configuration root element must be 'splinterd', not 'config'"):
            XMLFileConfig.from_string('<config/>')
        with pytest.raises(ConfigurationError, match='Cannot read configuration file'):
            XMLFileConfig.from_file(tmp_path / 'missing.xml')
        path = tmp_path / 'broken.xml'
        path.write_text('<splinterd>')
        with pytest.raises(ConfigurationError, match='Invalid configuration file'):
            XMLFileConfig.from_file(path)


class TestConfigBuilder:

    def test_precedence(self) -> None:
        config = (
            ConfigBuilder()
            .with_partial_config(EnvVarConfig({'SPLINTER_STATE_DIR': '/env/state'}).build())
            .with_partial_config(XMLFileConfig.from_string(CONFIG_XML).build())
            .with_partial_config(DefaultConfig().build())
            .build()
        )
        assert config == Config(state_dir='/env/state', cert_dir='/srv/splinter/certs')
        assert config.source_of('state_dir') is ConfigSource.Environment
        assert config.source_of('cert_dir') is ConfigSource.File

    def test_defaults(self) -> None:
        config = ConfigBuilder().with_partial_config(EnvVarConfig({}).build()).with_partial_config(DefaultConfig().build()).build()
        assert config.state_dir == '/var/lib/splinter'
        assert config.cert_dir == '/etc/splinter/certs'
        assert config.sources == {'state_dir': ConfigSource.Default, 'cert_dir': ConfigSource.Default}

    def test_missing_values(self) -> None:
        builder = ConfigBuilder().with_partial_config(PartialConfig(ConfigSource.Environment, cert_dir='/certs'))
        with pytest.raises(ConfigurationError, match="No value was provided for 'state_dir'"):
            builder.build()
        with pytest.raises(ConfigurationError, match='No value was provided'):
            ConfigBuilder().build()
