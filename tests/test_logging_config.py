"""Tests for log masking."""

import logging

from common.logging_config import SensitiveDataFilter, setup_logging


def make_record(msg, args=None):
    return logging.LogRecord('deploy', logging.INFO, __file__, 1, msg, args, None)


def test_masks_bearer_token():
    record = make_record('Authorization: Bearer abc.def.ghi')

    SensitiveDataFilter().filter(record)

    assert 'abc.def.ghi' not in record.getMessage()
    assert '***MASKED***' in record.getMessage()


def test_masks_jwt_in_json():
    record = make_record('{"result": {"jwt": "secret-jwt", "buckets": []}}')

    SensitiveDataFilter().filter(record)

    assert 'secret-jwt' not in record.getMessage()


def test_masks_args():
    record = make_record('completion %s', ('token=secret-value',))

    SensitiveDataFilter().filter(record)

    assert 'secret-value' not in record.getMessage()


def test_leaves_fingerprints_alone():
    record = make_record('/a.txt hash=8f434346648f6b96df89dda901c5176b size=2')

    SensitiveDataFilter().filter(record)

    assert record.getMessage() == '/a.txt hash=8f434346648f6b96df89dda901c5176b size=2'


def test_setup_logging_is_idempotent():
    logger = setup_logging('deploy-test', log_level='DEBUG')
    again = setup_logging('deploy-test', log_level='INFO', correlation_id='abc123')

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
    assert not logger.propagate
