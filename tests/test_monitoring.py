"""
Tests for crawl metrics and structured logging.
"""

import json
import logging

from sitemirror.utils.logger import JSONFormatter, get_crawler_logger
from sitemirror.utils.monitoring import CrawlMetrics


def test_metrics_are_isolated_per_instance():
    first, second = CrawlMetrics(), CrawlMetrics()
    first.record_fetch(100)
    first.record_error('fetch')
    first.record_error('persist')
    first.record_error('persist')

    summary = first.get_summary()
    assert summary['pages_fetched'] == 1
    assert summary['bytes_downloaded'] == 100
    assert summary['fetch_errors'] == 1
    assert summary['persist_errors'] == 2
    assert second.get_summary()['pages_fetched'] == 0


def test_server_is_not_started_when_disabled():
    CrawlMetrics(enable_server=False).start_server()


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_adapter_prefixes_worker_and_formats_json():
    logger = logging.getLogger('sitemirror.test.adapter')
    handler = ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        log = get_crawler_logger('sitemirror.test.adapter', worker='worker-3')
        log.log_url_event(logging.WARNING, 'http://ex.test/b.html', 'Failed to fetch')
    finally:
        logger.removeHandler(handler)

    record = handler.records[0]
    assert record.getMessage() == '[worker-3] Failed to fetch'

    entry = json.loads(JSONFormatter().format(record))
    assert entry['level'] == 'WARNING'
    assert entry['worker'] == 'worker-3'
    assert entry['url'] == 'http://ex.test/b.html'
    assert entry['event_type'] == 'url_event'
