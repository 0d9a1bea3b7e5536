"""
Tests for conversion between column values and attribute values.
"""
import datetime
import decimal
import io
import logging
import sqlite3

import numpy as np
import pandas as pd
import pytest
from dbcommon.exceptions import ConnectorError, ConnectorIOError
from dbcommon.types import convert_to_jdbc, convert_to_supported_type
from dbcommon.types import get_attribute_data_type, read_blob


class TestAttributeDataType:
    """Class name resolution with blob and temporal substitution"""

    @pytest.mark.parametrize(('class_name', 'expected'), [
        ('builtins.str', str),
        ('str', str),
        ('int', int),
        ('decimal.Decimal', decimal.Decimal),
        ('bytes', bytes),
        ('sqlite3.Blob', bytes),
        ('io.BytesIO', bytes),
        ('memoryview', bytes),
        ('datetime.datetime', int),
        ('datetime.date', int),
        ('datetime.time', int),
        ('pandas.Timestamp', int),
        ('numpy.datetime64', int),
    ])
    def test_resolution(self, class_name, expected):
        assert get_attribute_data_type(class_name) is expected

    def test_accepts_class(self):
        assert get_attribute_data_type(datetime.datetime) is int
        assert get_attribute_data_type(float) is float

    @pytest.mark.parametrize('class_name', [
        'no.such.module.Thing', 'datetime.NoSuchClass', 'datetime.MINYEAR', 'NoSuchBuiltin',
    ])
    def test_unresolvable_raises_connector_error(self, class_name):
        with pytest.raises(ConnectorError) as excinfo:
            get_attribute_data_type(class_name)
        assert excinfo.value.__cause__ is not None


class TestConvertToSupportedType:
    """Database value -> attribute value"""

    def test_temporal_to_epoch_millis(self, temporal_values):
        for value, millis in temporal_values:
            assert convert_to_supported_type(value) == millis

    def test_time_to_millis_since_midnight(self):
        assert convert_to_supported_type(datetime.time(1, 0, 0, 5000)) == 3600005

    def test_pandas_and_numpy_temporal(self):
        assert convert_to_supported_type(pd.Timestamp('2023-05-15 14:30:45.123')) == 1684161045123
        assert convert_to_supported_type(np.datetime64('2023-05-15T14:30:45.123')) == 1684161045123
        assert convert_to_supported_type(np.datetime64('NaT')) is None
        assert convert_to_supported_type(pd.NaT) is None

    def test_idempotent(self, temporal_values):
        for value, _ in temporal_values:
            once = convert_to_supported_type(value)
            assert convert_to_supported_type(once) == once

    @pytest.mark.parametrize('value', [None, 'alice', 42, 1.5, True, b'\x01'])
    def test_other_values_unchanged(self, value):
        assert convert_to_supported_type(value) is value

    def test_binary_stream_to_bytes(self):
        stream = io.BytesIO(b'\x00\x01\x02binary')
        assert convert_to_supported_type(stream) == b'\x00\x01\x02binary'
        assert stream.closed

    def test_memoryview_to_bytes(self):
        assert convert_to_supported_type(memoryview(b'abc')) == b'abc'

    def test_sqlite_blob_to_bytes(self):
        conn = sqlite3.connect(':memory:')
        try:
            conn.execute('CREATE TABLE t (data BLOB)')
            conn.execute("INSERT INTO t VALUES (X'0A0B0C')")
            blob = conn.blobopen('t', 'data', 1, readonly=True)
            blob.read(1)
            assert convert_to_supported_type(blob) == b'\x0a\x0b\x0c'
        finally:
            conn.close()

    def test_read_failure_raises_connector_io_error(self, mocker):
        stream = mocker.Mock(spec=io.BufferedReader)
        stream.read.side_effect = OSError('device gone')
        with pytest.raises(ConnectorIOError, match='device gone'):
            read_blob(stream)
        stream.close.assert_called_once()

    def test_close_failure_is_ignored(self, mocker):
        stream = mocker.Mock(spec=io.BufferedReader)
        stream.read.return_value = b'data'
        stream.close.side_effect = OSError('close failed')
        assert read_blob(stream) == b'data'


class TestConvertToJdbc:
    """Attribute value -> bind value"""

    @pytest.mark.parametrize('target', [None, '', '   '])
    @pytest.mark.parametrize('value', [None, 0, 1684161045123, 'text', b'\x01'])
    def test_blank_target_is_identity(self, value, target):
        assert convert_to_jdbc(value, target) is value

    def test_epoch_millis_to_datetime(self):
        assert convert_to_jdbc(1684161045123, 'datetime.datetime') == \
            datetime.datetime(2023, 5, 15, 14, 30, 45, 123000)

    def test_epoch_millis_to_date(self):
        assert convert_to_jdbc(1684108800000, datetime.date) == datetime.date(2023, 5, 15)

    def test_epoch_millis_to_pandas_and_numpy(self):
        assert convert_to_jdbc(1684161045123, 'pandas.Timestamp') == pd.Timestamp('2023-05-15 14:30:45.123')
        assert convert_to_jdbc(1684161045123, np.datetime64) == np.datetime64('2023-05-15T14:30:45.123')

    @pytest.mark.parametrize('millis', [0, 1, -1000, 1684161045123, 4102444800000])
    @pytest.mark.parametrize('target', [datetime.datetime, pd.Timestamp, np.datetime64])
    def test_round_trip(self, millis, target):
        assert convert_to_supported_type(convert_to_jdbc(millis, target)) == millis

    def test_numpy_integer_is_integral(self):
        assert convert_to_jdbc(np.int64(0), datetime.datetime) == datetime.datetime(1970, 1, 1)

    def test_non_integral_values_unchanged(self):
        assert convert_to_jdbc('1684161045123', datetime.datetime) == '1684161045123'
        assert convert_to_jdbc(1.5, datetime.datetime) == 1.5
        assert convert_to_jdbc(True, datetime.datetime) is True

    def test_non_temporal_target_unchanged(self):
        assert convert_to_jdbc(5, 'builtins.str') == 5

    def test_unresolvable_target_logs_and_returns_value(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='dbcommon.types'):
            assert convert_to_jdbc(5, 'no.such.Class') == 5
        assert 'Could not convert to class: no.such.Class' in caplog.text

    @pytest.mark.parametrize('millis', [10**16, -10**16, 2**63 - 1])
    @pytest.mark.parametrize('target', [datetime.datetime, datetime.date])
    def test_out_of_range_epoch_millis_unchanged(self, millis, target, caplog):
        with caplog.at_level(logging.DEBUG, logger='dbcommon.types'):
            assert convert_to_jdbc(millis, target) == millis
        assert f'Could not convert to class: {target.__name__}' in caplog.text
