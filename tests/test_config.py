import logging

from sradb_etl.config import DEFAULT_ATTRIBUTE_COLUMNS, ConfigManager


class TestConfigManager:

    def test_defaults(self):
        config = ConfigManager().get_pipeline_config()

        assert config['snapshot'] == 'SRAmetadb.sqlite'
        assert config['attribute_columns'] == DEFAULT_ATTRIBUTE_COLUMNS
        assert config['separator'] == ' || '
        assert config['by_label'] is False
        assert config['drop_null_columns'] is False
        assert config['validation']['enabled'] is True
        assert config['output_format'] == 'tsv'

    def test_yaml_overrides_are_merged(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text(
            "attributes:\n"
            "  columns: [cell_type, treatment]\n"
            "cleaning:\n"
            "  drop_null_columns: true\n"
        )

        config = ConfigManager(config_file).get_pipeline_config()

        assert config['attribute_columns'] == ['cell_type', 'treatment']
        assert config['separator'] == ' || '
        assert config['drop_null_columns'] is True
        assert config['empty_as_null'] is False

    def test_overrides_do_not_leak_between_instances(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text("validation:\n  enabled: false\n")

        ConfigManager(config_file)

        assert ConfigManager().get_validation_config()['enabled'] is True

    def test_malformed_yaml_keeps_defaults(self, tmp_path, caplog):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text("attributes: [unclosed\n")

        with caplog.at_level(logging.WARNING):
            config = ConfigManager(config_file).get_pipeline_config()

        assert config['attribute_columns'] == DEFAULT_ATTRIBUTE_COLUMNS
        assert 'Failed to load config' in caplog.text

    def test_set_ignores_none(self):
        manager = ConfigManager()
        manager.set('snapshot', 'path', None)
        manager.set('output', 'format', 'csv')

        config = manager.get_pipeline_config()
        assert config['snapshot'] == 'SRAmetadb.sqlite'
        assert config['output_format'] == 'csv'
