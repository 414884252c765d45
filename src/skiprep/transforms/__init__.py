"""
Per-feature transforms: record formatters, OSM tag and geometry helpers,
the ski area site provider and elevation enrichment.
"""
