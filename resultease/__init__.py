"""resultease: assessment spreadsheet ingestion, validation and result analytics.

Pipeline: TabularReader -> ColumnMapper -> RowTransformer -> ValidationEngine
-> ResultSet construction -> ranking / statistics / analytics.
"""

__version__ = "0.1.0"
