"""
Elastic Common Schema (ECS) mapping for parsed access log entries.
Based on ECS specification: https://www.elastic.co/guide/en/ecs/current/ecs-field-reference.html
"""

from typing import Any, Dict, Optional

from .entry import ParsedEntry


class ECSMapper:
    """Maps parsed access log entries to ECS-compliant documents."""

    # Entry attributes copied through unchanged
    HTTP_FIELDS = {
        'source.ip': 'ip',
        'http.request.method': 'method',
        'url.original': 'resource',
        'user_agent.original': 'agent'
    }

    def __init__(self, dataset: str = 'apache.access'):
        """
        Initialize ECS mapper.

        Args:
            dataset: Value for the event.dataset field
        """
        self.dataset = dataset

    def map_to_ecs(self, entry: ParsedEntry) -> Dict[str, Any]:
        """
        Map a parsed entry to ECS format.

        Args:
            entry: Entry produced by the classifier

        Returns:
            ECS event dictionary with dotted keys
        """
        ecs_event = get_ecs_template(self.dataset)

        if entry.timestamp is not None:
            ecs_event['@timestamp'] = entry.timestamp.isoformat()

        for ecs_field, entry_field in self.HTTP_FIELDS.items():
            ecs_event[ecs_field] = getattr(entry, entry_field)

        status_code = int(entry.status)
        ecs_event['http.response.status_code'] = status_code
        ecs_event['event.outcome'] = _outcome_for_status(status_code)

        if entry.has_size:
            ecs_event['http.response.body.bytes'] = int(entry.size)
        if entry.referer not in ('-', ''):
            ecs_event['http.request.referrer'] = entry.referer

        return ecs_event


def _outcome_for_status(status_code: int) -> str:
    if 200 <= status_code < 400:
        return 'success'
    elif 400 <= status_code < 600:
        return 'failure'
    return 'unknown'


def get_ecs_template(dataset: str = 'apache.access') -> Dict[str, Any]:
    """Base ECS fields shared by every access event."""
    return {
        'event.dataset': dataset,
        'event.module': dataset.split('.', 1)[0],
        'event.kind': 'event',
        'event.category': ['web'],
        'event.type': ['access']
    }


def entry_to_ecs(entry: ParsedEntry, dataset: Optional[str] = None) -> Dict[str, Any]:
    """Map a single entry with a default :class:`ECSMapper`."""
    mapper = ECSMapper(dataset) if dataset else ECSMapper()
    return mapper.map_to_ecs(entry)
