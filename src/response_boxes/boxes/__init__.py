"""Box pipeline: extraction, append-only event log, projection.

Layout:
    ~/.response-boxes/
    ├── response-boxes.toml            # Optional config
    └── analytics/
        └── boxes.jsonl                # Event log (append-only, one JSON object per line)

Capture: text -> extractor.extract_boxes -> events.BoxCreated -> store.EventLog.append
Inject:  store.EventLog.read -> events.LogSnapshot -> projection.render_projection
"""
