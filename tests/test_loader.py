"""Tests for metric configuration loading"""
import tempfile
from pathlib import Path
import pytest

from metrics.loader import ConfigError, load_config, parse_config, write_config
from metrics.models import ExtractorBackend, MetricDefinition, ScrapeType


VALID_CONFIG = """
headers:
  X-Dummy: my-test-header
metrics:
- name: example_global_value
  path: "$.counter"
  help: Example of a top-level global value scrape in the json
  labels:
    environment: "$.environment"
    location: planet-mars
- name: example_value
  type: object
  help: Example of sub-level value scrapes from a json
  object_path: "$.values[*]"
  path: "$.count"
  labels:
    id: "$.id"
"""


class TestParseConfig:
    """Test parsing of YAML metric configurations"""

    def test_valid_config(self):
        """Test a complete document"""
        config = parse_config(VALID_CONFIG)

        assert config.extractor == ExtractorBackend.JSONPATH
        assert config.header_dict == {"X-Dummy": "my-test-header"}
        assert len(config.metrics) == 2

        global_value, value = config.metrics
        assert global_value == MetricDefinition(
            name="example_global_value",
            help_text="Example of a top-level global value scrape in the json",
            path="$.counter",
            label_names=("environment", "location"),
            label_paths=("$.environment", "planet-mars"),
        )
        assert global_value.scrape_type == ScrapeType.VALUE
        assert value.scrape_type == ScrapeType.OBJECT
        assert value.object_path == "$.values[*]"
        assert value.label_names == ("id",)

    def test_empty_document(self):
        """Test an empty document is a config with no metrics"""
        config = parse_config("")

        assert config.metrics == ()
        assert config.headers == ()

    def test_jq_extractor(self):
        """Test the extractor backend is case insensitive"""
        config = parse_config("extractor: JQ\nmetrics: []\n")

        assert config.extractor == ExtractorBackend.JQ

    def test_help_defaults_to_name(self):
        """Test help text falls back to the metric name"""
        config = parse_config("metrics:\n- name: up\n  path: '1'\n")

        assert config.metrics[0].help_text == "up"

    def test_object_path_implies_object_type(self):
        """Test a definition with object_path and no type is an object scrape"""
        config = parse_config("metrics:\n- name: m\n  object_path: $.items\n  path: $.v\n")

        assert config.metrics[0].scrape_type == ScrapeType.OBJECT

    @pytest.mark.parametrize("content", [
        "metrics: [\n",
        "- just\n- a list\n",
        "extractor: xpath\n",
        "metrics:\n- name: 1bad\n  path: $.x\n",
        "metrics:\n- name: m\n  path: ''\n",
        "metrics:\n- name: m\n",
        "metrics:\n- name: m\n  path: $.x\n  labels:\n    __reserved: $.y\n",
        "metrics:\n- name: m\n  path: $.x\n  labels:\n    bad-name: $.y\n",
        "metrics:\n- name: m\n  path: $.x\n  type: gauge\n",
        "metrics:\n- name: m\n  path: $.x\n  type: object\n",
        "metrics:\n- name: m\n  path: $.x\n  type: value\n  object_path: $.items\n",
        "1: x\nmetrics: []\n",
        "metrics:\n- name: m\n  path: $.x\n  labels:\n    1: $.y\n",
    ])
    def test_invalid_config(self, content):
        """Test invalid documents raise ConfigError"""
        with pytest.raises(ConfigError):
            parse_config(content, source="test")


class TestLoadConfig:
    """Test reading and writing config files"""

    def test_load_config(self):
        """Test loading from a file"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "config.yml"
            path.write_text(VALID_CONFIG)

            config = load_config(path)

            assert [m.name for m in config.metrics] == ["example_global_value", "example_value"]

    def test_missing_file(self):
        """Test a missing file raises ConfigError"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            with pytest.raises(ConfigError):
                load_config(Path(tmp_dir) / "missing.yml")

    def test_bundled_examples(self):
        """Test the example configs shipped with the project are valid"""
        root = Path(__file__).parent.parent / "examples"

        assert load_config(root / "config.yml").extractor == ExtractorBackend.JSONPATH
        assert load_config(root / "config-jq.yml").extractor == ExtractorBackend.JQ

    def test_write_config(self):
        """Test a written config replaces the file and leaves no temp file"""
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "conf" / "config.yml"

            write_config(path, "metrics: []\n")
            write_config(path, VALID_CONFIG.encode())

            assert path.read_text() == VALID_CONFIG
            assert list(path.parent.iterdir()) == [path]
