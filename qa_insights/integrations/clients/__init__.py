"""
Data source clients.

- real_http/: search backend client (live data)
- local/: local snapshot client (fallback data)

Both return records shaped according to qa_insights/integrations/contracts/*.
"""
