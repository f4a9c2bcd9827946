"""Orchestration services.

Fleet discovery and capacity control for the auto-scaling groups, the
readiness gates that sequence dependent tiers, and the Solr collection
lifecycle that carries index data across a suspend/resume cycle.
"""
