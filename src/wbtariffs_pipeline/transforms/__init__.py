"""
wbtariffs_pipeline.transforms — pure payload → record transformations.

  normalize  — total numeric normalization of upstream free-text numbers
  tariffs    — box-tariff payload validation and draft building
"""
