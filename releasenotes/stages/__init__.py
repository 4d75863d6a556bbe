"""Pipeline stages: sorting, reference linking, deduplication, label extraction,
classification, assembly.

Each stage exposes a small function API and is skipped when its configuration
entry (`reference`, `duplicate_filter`, `label_extractor`, ...) is absent.
"""
