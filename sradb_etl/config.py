"""Configuration management for SRAdb ETL"""

import copy
import logging

import yaml

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE_COLUMNS = ['source_name', 'strain', 'tissue', 'age', 'genotype']

REQUIRED_COLUMNS = {
    'sra': ['run_accession', 'sample_accession', 'study_accession'],
    'study': ['study_accession'],
    'sample': ['sample_accession', 'sample_attribute'],
}


class ConfigManager:
    """Manages configuration loading and validation"""

    DEFAULT_CONFIG = {
        'snapshot': {
            'path': 'SRAmetadb.sqlite'
        },
        'study': {
            'accession': None
        },
        'attributes': {
            'columns': DEFAULT_ATTRIBUTE_COLUMNS,
            'separator': ' || ',
            'by_label': False
        },
        'cleaning': {
            'drop_null_columns': False,
            'empty_as_null': False
        },
        'query': {
            'chunk_size': 500
        },
        'validation': {
            'enabled': True,
            'required_columns': REQUIRED_COLUMNS
        },
        'output': {
            'format': 'tsv',
            'path': None
        }
    }

    def __init__(self, config_path=None):
        """Initialize configuration manager"""
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_path:
            self.load_config(config_path)

    def load_config(self, config_path):
        """Load configuration from YAML file"""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return

        if isinstance(user_config, dict):
            self._merge_config(self.config, user_config)
            logger.info(f"Configuration loaded from {config_path}")
        elif user_config is not None:
            logger.warning(f"Ignoring config {config_path}: top level is not a mapping")

    def _merge_config(self, base, update):
        """Recursively merge configuration dictionaries"""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def set(self, section, key, value):
        """Override a single setting; ``None`` leaves the current value alone"""
        if value is not None:
            self.config.setdefault(section, {})[key] = value

    def get_pipeline_config(self):
        """Get the settings the pipeline stages read"""
        return {
            'snapshot': self.config['snapshot']['path'],
            'study_accession': self.config['study']['accession'],
            'attribute_columns': list(self.config['attributes']['columns']),
            'separator': self.config['attributes']['separator'],
            'by_label': self.config['attributes']['by_label'],
            'drop_null_columns': self.config['cleaning']['drop_null_columns'],
            'empty_as_null': self.config['cleaning']['empty_as_null'],
            'chunk_size': self.config['query']['chunk_size'],
            'validation': self.get_validation_config(),
            'output_format': self.config['output']['format'],
            'output_path': self.config['output']['path'],
        }

    def get_validation_config(self):
        """Get validation configuration"""
        return self.config.get('validation', {})
