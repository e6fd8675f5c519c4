"""Shared fixtures: a miniature SRAmetadb snapshot built with SQLAlchemy"""

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL

ATTRIBUTE_COLUMNS = ['source_name', 'strain', 'tissue', 'age', 'genotype']

CEREBELLUM = "source_name: cerebellum || strain: C57BL/6 || tissue: brain || age: P7 || genotype: wildtype"

SRA_ROWS = [
    # SRP000001: SRS000001 has three runs
    (1, 'SRR000001', 'SRS000001', 'SRP000001', 'SRX000001', 'Cerebellum development'),
    (2, 'SRR000002', 'SRS000001', 'SRP000001', 'SRX000001', 'Cerebellum development'),
    (3, 'SRR000003', 'SRS000001', 'SRP000001', 'SRX000002', 'Cerebellum development'),
    (4, 'SRR000004', 'SRS000002', 'SRP000001', 'SRX000003', 'Cerebellum development'),
    (5, 'SRR000005', 'SRS000003', 'SRP000001', 'SRX000004', 'Cerebellum development'),
    # SRP000002: the sample attribute field is one part short
    (6, 'SRR000006', 'SRS000004', 'SRP000002', 'SRX000005', 'Short attributes'),
    # SRP000003: no row in the study table
    (7, 'SRR000007', 'SRS000005', 'SRP000003', 'SRX000006', 'Orphan study'),
]

STUDY_ROWS = [
    (1, 'SRP000001', 'Cerebellum development', 'Postnatal cerebellum RNA-seq'),
    (2, 'SRP000002', 'Short attributes', 'Samples with a missing field'),
]

SAMPLE_ROWS = [
    (1, 'SRS000001', 'cb_p7', None, CEREBELLUM),
    (2, 'SRS000002', 'cx_p14', None,
     "source_name: cortex || strain: C57BL/6 || tissue: brain || age: P14 || genotype: Pcp2-cre"),
    (3, 'SRS000003', '', None,
     "source_name: liver || strain: BALB/c || tissue: liver || age: adult || genotype: wildtype"),
    (4, 'SRS000004', 'short', None,
     "source_name: kidney || strain: C57BL/6 || tissue: kidney || age: P7"),
    (5, 'SRS000005', 'orphan', None,
     "source_name: heart || strain: C57BL/6 || tissue: heart || age: P7 || genotype: wildtype"),
]


def build_snapshot(path, sra_rows=SRA_ROWS, study_rows=STUDY_ROWS, sample_rows=SAMPLE_ROWS):
    """Create an SQLite file holding the sra, study and sample tables"""
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(URL.create('sqlite', database=str(path)))
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE sra (sra_ID INTEGER, run_accession TEXT, sample_accession TEXT, "
            "study_accession TEXT, experiment_accession TEXT, study_title TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE study (study_ID INTEGER, study_accession TEXT, "
            "study_title TEXT, study_abstract TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE sample (sample_ID INTEGER, sample_accession TEXT, "
            "sample_alias TEXT, description TEXT, sample_attribute TEXT)"
        ))
        conn.execute(
            text("INSERT INTO sra VALUES (:id, :run, :sample, :study, :experiment, :title)"),
            [dict(zip(['id', 'run', 'sample', 'study', 'experiment', 'title'], row)) for row in sra_rows],
        )
        conn.execute(
            text("INSERT INTO study VALUES (:id, :study, :title, :abstract)"),
            [dict(zip(['id', 'study', 'title', 'abstract'], row)) for row in study_rows],
        )
        conn.execute(
            text("INSERT INTO sample VALUES (:id, :sample, :alias, :description, :attribute)"),
            [dict(zip(['id', 'sample', 'alias', 'description', 'attribute'], row)) for row in sample_rows],
        )
    engine.dispose()
    return path


@pytest.fixture
def snapshot_path(tmp_path):
    return build_snapshot(tmp_path / 'SRAmetadb.sqlite')


@pytest.fixture
def engine(snapshot_path):
    from sradb_etl.connector import open_snapshot

    with open_snapshot(snapshot_path) as engine:
        yield engine


@pytest.fixture
def pipeline_config():
    from sradb_etl.config import ConfigManager

    return ConfigManager().get_pipeline_config()
