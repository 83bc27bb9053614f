"""
Integrations layer.
This package contains all code used to reach the analytics data sources:
- the search backend (Elasticsearch / OpenSearch) holding live test analytics
- the local JSON snapshot bundled with the dashboard

Key rule:
- Services MUST NOT issue HTTP requests or read snapshot files directly.
- They call the clients under qa_insights/integrations/clients.

Switching sources:
- The choice between search backend and snapshot happens in ONE place
  (qa_insights/services/source_resolver.py).
"""
