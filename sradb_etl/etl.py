import logging
import re
from pathlib import Path

import pandas as pd
from sqlalchemy import bindparam, text

from .config import DEFAULT_ATTRIBUTE_COLUMNS
from .connector import open_snapshot
from .exceptions import OutputWriteError, SchemaError, ShapeMismatchError
from .validator import SnapshotValidator

logger = logging.getLogger(__name__)

ATTRIBUTE_FIELD = 'sample_attribute'
ATTRIBUTE_SEPARATOR = ' || '
LABEL_PREFIX = re.compile(r'^.*: ')
OUTPUT_FORMATS = ('tsv', 'csv', 'json')

STUDY_RUNS_QUERY = text("SELECT * FROM sra WHERE study_accession = :study")
STUDY_DETAIL_QUERY = text("SELECT * FROM study WHERE study_accession = :study")
SAMPLE_QUERY = text(
    "SELECT * FROM sample WHERE sample_accession IN :accessions"
).bindparams(bindparam('accessions', expanding=True))
SAMPLE_COLUMNS_QUERY = text("SELECT * FROM sample LIMIT 0")


def resolve_study(engine, study_accession):
    """Return the run rows of one study joined to its study-detail row.

    Both tables are filtered in SQL; the join is an inner join, so runs
    whose study has no detail row are dropped. An unknown accession
    yields an empty frame, not an error.
    """
    params = {'study': study_accession}
    with engine.connect() as conn:
        runs = pd.read_sql_query(STUDY_RUNS_QUERY, conn, params=params)
        detail = pd.read_sql_query(STUDY_DETAIL_QUERY, conn, params=params)

    records = runs.merge(detail, on='study_accession', how='inner', suffixes=('', '_study'))
    if runs.empty:
        logger.warning(f"Study {study_accession} matched no runs in the snapshot")
    elif records.empty:
        logger.warning(f"Study {study_accession} has no runs with a study-detail row")
    else:
        logger.info(f"Resolved {len(records)} runs for study {study_accession}")
    return records


def resolve_samples(engine, study_records, chunk_size=500):
    """Return one sample row per distinct sample accession in ``study_records``"""
    accessions = sorted(study_records['sample_accession'].dropna().unique())

    with engine.connect() as conn:
        if not accessions:
            return pd.read_sql_query(SAMPLE_COLUMNS_QUERY, conn)

        # SQLite caps the number of bound variables per statement
        frames = [
            pd.read_sql_query(
                SAMPLE_QUERY, conn,
                params={'accessions': accessions[start:start + chunk_size]},
            )
            for start in range(0, len(accessions), chunk_size)
        ]

    samples = pd.concat(frames, ignore_index=True)
    samples = samples.drop_duplicates(subset='sample_accession').reset_index(drop=True)
    logger.info(f"Resolved {len(samples)} of {len(accessions)} samples")
    return samples


def drop_null_columns(frame, empty_as_null=False, keep=()):
    """Drop columns in which every value is null.

    With ``empty_as_null`` set, empty and whitespace-only strings count
    as null too. Columns named in ``keep`` always survive. A frame with
    no rows is returned unchanged.
    """
    if len(frame) == 0:
        return frame.copy()

    def is_null(column):
        missing = column.isna()
        if empty_as_null:
            blank = column.map(lambda value: isinstance(value, str) and not value.strip())
            missing = missing | blank.astype(bool)
        return missing

    empty = [name for name in frame.columns if name not in keep and is_null(frame[name]).all()]
    if empty:
        logger.debug(f"Dropping all-null columns: {', '.join(empty)}")
    return frame.drop(columns=empty)


def _label_key(label):
    return re.sub(r'[\s_]+', '_', label.strip().lower())


def _route_by_label(parts, columns):
    targets = {_label_key(column): column for column in columns}
    row = dict.fromkeys(columns)
    for part in parts:
        label, sep, _ = part.partition(': ')
        column = targets.get(_label_key(label)) if sep else None
        if column is None:
            logger.debug(f"Ignoring unmatched attribute {part!r}")
        elif row[column] is None:
            row[column] = part
    return row


def split_attributes(frame, columns, separator=ATTRIBUTE_SEPARATOR, by_label=False):
    """Expand the attribute field into one column per name in ``columns``.

    By default part *i* of the field goes to ``columns[i]`` and every row
    must split into exactly ``len(columns)`` parts. With ``by_label`` set,
    parts are routed by their ``label:`` prefix instead and absent labels
    are left null.
    """
    columns = list(columns)
    if not columns:
        raise ValueError("At least one attribute column is required")
    keys = [_label_key(column) for column in columns] if by_label else columns
    if len(set(keys)) != len(keys):
        raise ValueError(f"Attribute column names must be unique: {columns}")
    if ATTRIBUTE_FIELD not in frame.columns:
        raise SchemaError(f"Sample table has no '{ATTRIBUTE_FIELD}' column")

    raw = frame[ATTRIBUTE_FIELD]
    parts = raw.map(lambda value: value.split(separator) if isinstance(value, str) else [])

    if by_label:
        rows = [_route_by_label(items, columns) for items in parts]
    else:
        counts = parts.map(len)
        mismatched = counts != len(columns)
        if mismatched.any():
            first = int(mismatched.to_numpy().argmax())
            raise ShapeMismatchError(
                frame['sample_accession'].iat[first],
                raw.iat[first],
                expected=len(columns),
                found=int(counts.iat[first]),
                mismatched_rows=int(mismatched.sum()),
            )
        rows = parts.tolist()

    expanded = pd.DataFrame(rows, index=frame.index, columns=columns)
    base = frame.drop(columns=[ATTRIBUTE_FIELD, *frame.columns.intersection(columns)])
    return pd.concat([base, expanded], axis=1)


def _strip_label(value):
    if isinstance(value, str):
        return LABEL_PREFIX.sub('', value, count=1)
    return value


def clean_values(frame, columns):
    """Strip the ``label: `` prefix from every value in ``columns``"""
    cleaned = frame.copy()
    for column in columns:
        cleaned[column] = cleaned[column].map(_strip_label)
    return cleaned


def merge_accessions(study_records, cleaned, columns):
    """Attach run accessions to cleaned samples, one row per (run, sample) pair"""
    pairs = (
        study_records[['run_accession', 'sample_accession']]
        .dropna()
        .drop_duplicates()
    )
    merged = pairs.merge(cleaned, on='sample_accession', how='inner')
    return merged[['run_accession', 'sample_accession', *columns]].reset_index(drop=True)


def write_output(frame, output_file, output_format='tsv'):
    """Write ``frame`` to ``output_file``, all or nothing.

    Rows go to a hidden sibling file first, which is renamed over the
    target only once fully written.
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {output_format}")

    target = Path(output_file)
    partial = target.with_name(f'.{target.name}.part')
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            if output_format == 'tsv':
                frame.to_csv(partial, sep='\t', index=False)
            elif output_format == 'csv':
                frame.to_csv(partial, index=False)
            else:
                frame.to_json(partial, orient='records', indent=2)
            partial.replace(target)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
    except OSError as e:
        raise OutputWriteError(target, e) from e

    logger.info(f"Data saved to {target}")


class MetadataPipeline:
    def __init__(self, config):
        self.config = config
        self.columns = list(config.get('attribute_columns') or DEFAULT_ATTRIBUTE_COLUMNS)
        self.validator = SnapshotValidator(config.get('validation', {}))

        chunk_size = config.get('chunk_size', 500)
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ValueError(f"query.chunk_size must be a positive integer, got {chunk_size!r}")
        self.chunk_size = chunk_size

    def process(self, snapshot, study_accession, output_file, output_format='tsv'):
        logger.info(f"Starting extraction: {study_accession} from {snapshot} -> {output_file}")

        study_records, samples = self._extract(snapshot, study_accession)
        output = self._transform(study_records, samples)
        write_output(output, output_file, output_format)

        logger.info("Extraction completed successfully")
        return {
            'study_accession': study_accession,
            'runs': int(study_records['run_accession'].nunique()),
            'samples': len(samples),
            'rows_written': len(output),
            'output_file': str(output_file)
        }

    def build(self, snapshot, study_accession):
        """Run every stage except the final write and return the output table"""
        study_records, samples = self._extract(snapshot, study_accession)
        return self._transform(study_records, samples)

    def _extract(self, snapshot, study_accession):
        with open_snapshot(snapshot) as engine:
            if self.validator.enabled:
                self.validator.check(engine)
            study_records = resolve_study(engine, study_accession)
            samples = resolve_samples(
                engine, study_records, chunk_size=self.chunk_size
            )
        return study_records, samples

    def _transform(self, study_records, samples):
        if self.config.get('drop_null_columns'):
            samples = drop_null_columns(
                samples,
                empty_as_null=self.config.get('empty_as_null', False),
                keep=('sample_accession', ATTRIBUTE_FIELD),
            )

        split = split_attributes(
            samples,
            self.columns,
            separator=self.config.get('separator', ATTRIBUTE_SEPARATOR),
            by_label=self.config.get('by_label', False),
        )
        cleaned = clean_values(split, self.columns)
        output = merge_accessions(study_records, cleaned, self.columns)
        logger.info(
            f"Transformed data: {len(samples)} samples -> {len(output)} run rows"
        )
        return output
