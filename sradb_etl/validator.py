import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from .config import REQUIRED_COLUMNS
from .exceptions import SchemaError
from .utils import format_error_message

logger = logging.getLogger(__name__)


class SnapshotValidator:
    def __init__(self, config):
        self.config = config
        self.enabled = config.get('enabled', True)
        self.required_columns = config.get('required_columns') or REQUIRED_COLUMNS

    def validate(self, engine):
        try:
            inspector = inspect(engine)
            tables = set(inspector.get_table_names())

            errors = []
            errors.extend(self._validate_tables(tables))
            errors.extend(self._validate_columns(inspector, tables))
        except SQLAlchemyError as e:
            logger.error(f"Failed to read snapshot schema: {e}")
            return False, [f"Failed to read snapshot schema: {e}"]

        is_valid = len(errors) == 0
        if is_valid:
            logger.info("Snapshot schema validation passed")
        else:
            logger.warning(f"Snapshot schema validation failed with {len(errors)} errors")

        return is_valid, errors

    def check(self, engine):
        """Raise ``SchemaError`` unless the snapshot has every required table and column"""
        is_valid, errors = self.validate(engine)
        if not is_valid:
            raise SchemaError("; ".join(errors))

    def _validate_tables(self, tables):
        errors = []
        for table in self.required_columns:
            if table not in tables:
                errors.append(format_error_message("missing required table", table=table))
        return errors

    def _validate_columns(self, inspector, tables):
        errors = []

        for table, required in self.required_columns.items():
            if table not in tables:
                continue

            present = {column['name'] for column in inspector.get_columns(table)}
            for column in required:
                if column not in present:
                    errors.append(
                        format_error_message(f"missing required column: {column}", table=table)
                    )

        return errors
