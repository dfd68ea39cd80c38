# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for IdentifierExtractor.
"""

from oplogstats.processing.oplog.extractor import IdentifierExtractor
from oplogstats.processing.oplog.models import ChangeRecord, LogPosition


def _record(op, obj=None, query=None):
    return ChangeRecord(
        position=LogPosition(1, 0),
        op=op,
        namespace="metrics.raw",
        obj=obj or {},
        query=query or {},
    )


class TestInsertExtraction:

    def test_insert_uses_payload_id(self):
        extractor = IdentifierExtractor()
        assert extractor.extract(_record('i', obj={'_id': 'abc', 'value': 5})) == 'abc'
        assert extractor.stats == {'extracted': 1, 'dropped': 0}

    def test_insert_accepts_extended_json_object_id(self):
        extractor = IdentifierExtractor()
        record = _record('i', obj={'_id': {'$oid': '507f1f77bcf86cd799439011'}})
        assert extractor.extract(record) == '507f1f77bcf86cd799439011'

    def test_insert_without_id_is_dropped(self):
        extractor = IdentifierExtractor()
        assert extractor.extract(_record('i', obj={'value': 5})) is None
        assert extractor.stats['dropped'] == 1

    def test_insert_with_unexpected_id_type_is_dropped(self):
        extractor = IdentifierExtractor()
        assert extractor.extract(_record('i', obj={'_id': 12345})) is None
        assert extractor.extract(_record('i', obj={'_id': ''})) is None
        assert extractor.extract(_record('i', obj={'_id': {'nested': 'x'}})) is None
        assert extractor.stats['dropped'] == 3


class TestUpdateExtraction:

    def test_update_uses_selector_not_payload(self):
        extractor = IdentifierExtractor()
        record = _record('u', obj={'$set': {'value': 7}}, query={'_id': 'abc'})
        assert extractor.extract(record) == 'abc'

    def test_update_ignores_id_in_payload(self):
        extractor = IdentifierExtractor()
        record = _record('u', obj={'_id': 'abc', '$set': {'value': 7}})
        assert extractor.extract(record) is None
        assert extractor.stats['dropped'] == 1


def test_other_operations_yield_nothing():
    extractor = IdentifierExtractor()
    assert extractor.extract(_record('d', obj={'_id': 'abc'})) is None


def test_repeated_records_yield_repeated_identifiers():
    extractor = IdentifierExtractor()
    record = _record('u', query={'_id': 'k1'})
    assert [extractor.extract(record), extractor.extract(record)] == ['k1', 'k1']
    assert extractor.stats['extracted'] == 2
