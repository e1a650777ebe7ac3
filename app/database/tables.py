from sqlalchemy import (
    MetaData, Table, Column, String, Integer, BigInteger
)

metadata = MetaData()

def build_dispatch_table(name: str, meta: MetaData = metadata) -> Table:
    # append-only: nessun vincolo di unicita' sulle colonne di audit
    if name in meta.tables:
        return meta.tables[name]
    return Table(
        name,
        meta,
        Column("id", BigInteger, primary_key=True, autoincrement=True),
        Column("sentId", String(255), nullable=False),
        Column("toEmailAddress", String(320), nullable=False, index=True),
        Column("status", Integer, nullable=False),
        Column("time", String(64), nullable=False),
    )
