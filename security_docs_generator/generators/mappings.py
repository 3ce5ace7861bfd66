EVENT_INDEX_MAPPING = {
    "dynamic_templates": [
        {
            "ip_fields": {
                "match": "*.ip",
                "mapping": {"type": "ip"},
            }
        },
        {
            "strings_as_keyword": {
                "match_mapping_type": "string",
                "mapping": {"type": "keyword", "ignore_above": 1024},
            }
        },
    ],
    "properties": {
        "@timestamp": {"type": "date"},
        "message": {"type": "text"},
        "event": {
            "properties": {
                "kind": {"type": "keyword"},
                "category": {"type": "keyword"},
                "type": {"type": "keyword"},
                "action": {"type": "keyword"},
                "outcome": {"type": "keyword"},
            }
        },
        "host": {
            "properties": {
                "name": {"type": "keyword"},
                "ip": {"type": "ip"},
                "os": {"properties": {"type": {"type": "keyword"}}},
            }
        },
        "user": {
            "properties": {
                "name": {"type": "keyword"},
                "domain": {"type": "keyword"},
            }
        },
        "source": {"properties": {"ip": {"type": "ip"}}},
        "destination": {"properties": {"ip": {"type": "ip"}, "port": {"type": "long"}}},
        "process": {
            "properties": {
                "name": {"type": "keyword"},
                "pid": {"type": "long"},
                "command_line": {
                    "type": "keyword",
                    "fields": {"text": {"type": "text"}},
                },
            }
        },
    },
}

ALERT_INDEX_MAPPING = {
    "properties": {
        "@timestamp": {"type": "date"},
        "kibana": {
            "properties": {
                "alert": {
                    "properties": {
                        "uuid": {"type": "keyword"},
                        "status": {"type": "keyword"},
                        "workflow_status": {"type": "keyword"},
                        "severity": {"type": "keyword"},
                        "risk_score": {"type": "float"},
                        "rule": {
                            "properties": {
                                "name": {"type": "keyword"},
                                "uuid": {"type": "keyword"},
                            }
                        },
                    }
                },
                "space_ids": {"type": "keyword"},
            }
        },
        "host": {"properties": {"name": {"type": "keyword"}}},
        "user": {"properties": {"name": {"type": "keyword"}}},
    }
}
