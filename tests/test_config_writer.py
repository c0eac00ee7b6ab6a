"""Tests for the generated ClickHouse server configuration."""

import xml.etree.ElementTree as ET

import pytest

from embedded_clickhouse import InvalidSettingKeyError
from embedded_clickhouse.server.config_writer import (
    DEFAULT_SERVER_SETTINGS,
    merge_settings,
    write_server_config,
    xml_escape,
)


class TestWriteServerConfig:
    def test_ports_and_settings(self, tmp_path):
        path = write_server_config(tmp_path, 19000, 18123, {"max_threads": "4"})
        content = path.read_text()

        assert path == tmp_path / "config.xml"
        assert "<tcp_port>19000</tcp_port>" in content
        assert "<http_port>18123</http_port>" in content
        assert "<max_threads>4</max_threads>" in content
        assert "<max_server_memory_usage>1073741824</max_server_memory_usage>" in content

    def test_creates_working_directories(self, tmp_path):
        write_server_config(tmp_path, 9000, 8123)

        for name in ("data", "tmp", "user_files", "format_schemas"):
            assert (tmp_path / name).is_dir()

    def test_document_structure(self, tmp_path):
        path = write_server_config(tmp_path, 9000, 8123)
        root = ET.parse(path).getroot()

        assert root.tag == "clickhouse"
        assert root.findtext("logger/level") == "warning"
        assert root.findtext("logger/console") == "1"
        assert root.findtext("path") == f"{tmp_path / 'data'}/"
        assert root.findtext("tmp_path") == f"{tmp_path / 'tmp'}/"
        assert root.findtext("user_files_path") == f"{tmp_path / 'user_files'}/"
        assert root.findtext("format_schema_path") == f"{tmp_path / 'format_schemas'}/"
        assert root.findtext("users/default/password") in (None, "")
        assert [ip.text for ip in root.findall("users/default/networks/ip")] == [
            "::1",
            "127.0.0.1",
        ]
        assert root.findtext("users/default/profile") == "default"
        assert root.findtext("users/default/quota") == "default"
        assert root.find("profiles/default") is not None
        assert root.find("quotas/default") is not None

    def test_values_are_escaped(self, tmp_path):
        path = write_server_config(
            tmp_path, 9000, 8123, {"display_name": "<a & 'b' \"c\">"}
        )
        content = path.read_text()

        assert (
            "<display_name>&lt;a &amp; &apos;b&apos; &quot;c&quot;&gt;</display_name>"
            in content
        )
        assert ET.parse(path).getroot().findtext("display_name") == "<a & 'b' \"c\">"

    def test_user_setting_overrides_default(self, tmp_path):
        path = write_server_config(
            tmp_path, 9000, 8123, {"max_server_memory_usage": "2147483648"}
        )
        root = ET.parse(path).getroot()

        assert [e.text for e in root.findall("max_server_memory_usage")] == [
            "2147483648"
        ]

    def test_settings_sorted(self, tmp_path):
        path = write_server_config(tmp_path, 9000, 8123, {"b_setting": "1", "a_setting": "2"})
        content = path.read_text()
        assert content.index("<a_setting>") < content.index("<b_setting>")

    @pytest.mark.parametrize(
        "key", ["invalid key!", "1abc", "_x", "a-b", "", "max_threads\n"]
    )
    def test_invalid_key_rejected_before_io(self, tmp_path, key):
        work_dir = tmp_path / "work"

        with pytest.raises(InvalidSettingKeyError) as e:
            write_server_config(work_dir, 9000, 8123, {key: "1"})

        assert e.value.key == key
        assert f'"{key}"' in str(e.value)
        assert not work_dir.exists()


def test_merge_settings():
    assert merge_settings(None) == DEFAULT_SERVER_SETTINGS
    merged = merge_settings({"max_threads": "2"})
    assert merged == {"max_server_memory_usage": "1073741824", "max_threads": "2"}
    # defaults untouched
    assert DEFAULT_SERVER_SETTINGS == {"max_server_memory_usage": "1073741824"}


def test_xml_escape():
    assert xml_escape("a&b<c>d\"e'f") == "a&amp;b&lt;c&gt;d&quot;e&apos;f"
    assert xml_escape("plain") == "plain"
