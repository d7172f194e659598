"""
wbtariffs_pipeline.sinks — downstream consumers of the stored snapshot.

  GoogleSheetsSync — writes the latest snapshot into Google spreadsheets
"""
