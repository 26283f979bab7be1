"""
Unit tests for banner and category tile row packing.
"""

from storefront.services.layout_service import (
    pack_rows, describe_row, layout_rows, normalize_width, normalize_alignment
)


def _item(name, width, alignment='center'):
    return {'name': name, 'width': width, 'alignment': alignment}


def _width(item):
    return item['width']


def _alignment(item):
    return item['alignment']


def _names(rows):
    return [[item['name'] for item in row] for row in rows]


class TestNormalize:

    def test_width_strings_and_invalid_values(self):
        """Test width normalisation."""
        assert normalize_width('75') == 75
        assert normalize_width(' 25 ') == 25
        assert normalize_width(None) == 50
        assert normalize_width(33) == 50
        assert normalize_width('wide') == 50

    def test_alignment(self):
        """Test alignment normalisation."""
        assert normalize_alignment('left') == 'left'
        assert normalize_alignment(None) == 'center'
        assert normalize_alignment('top') == 'center'


class TestPackRows:
    """Greedy packing into rows of at most 100%."""

    def test_full_width_gets_its_own_row(self):
        """Test that a full width item sits alone in its row."""
        items = [_item('a', 50), _item('b', 100), _item('c', 25)]
        assert _names(pack_rows(items, _width)) == [['a'], ['b'], ['c']]

    def test_row_closes_at_exactly_100(self):
        """Test that a row closes when it reaches 100."""
        items = [_item('a', 50), _item('b', 50), _item('c', 25)]
        assert _names(pack_rows(items, _width)) == [['a', 'b'], ['c']]

    def test_overflow_starts_new_row(self):
        """Test that an item that does not fit starts a new row."""
        items = [_item('a', 75), _item('b', 50), _item('c', 25), _item('d', 25)]
        assert _names(pack_rows(items, _width)) == [['a'], ['b', 'c', 'd']]

    def test_order_is_preserved(self):
        """Test that packing keeps item order."""
        items = [_item('a', 25), _item('b', 75), _item('c', 25), _item('d', 25)]
        assert _names(pack_rows(items, _width)) == [['a', 'b'], ['c', 'd']]

    def test_empty(self):
        """Test packing no items."""
        assert pack_rows([], _width) == []


class TestDescribeRow:
    """Render hints for packed rows."""

    def test_single_full_width_has_no_alignment(self):
        """Test that a single full width item has no alignment."""
        row = [_item('a', 100, 'left')]
        info = describe_row(row, _width, _alignment)
        assert info['alignment'] is None
        assert info['is_partial'] is False
        assert info['columns'] == [4]

    def test_single_partial_item_uses_its_alignment(self):
        """Test that a lone partial item keeps its alignment."""
        info = describe_row([_item('a', 50, 'right')], _width, _alignment)
        assert info['alignment'] == 'right'
        assert info['is_partial'] is True

    def test_partial_row_uses_first_item_alignment(self):
        """Test that a partial row takes the first item alignment."""
        row = [_item('a', 25, 'left'), _item('b', 25, 'right')]
        info = describe_row(row, _width, _alignment)
        assert info['total_width'] == 50
        assert info['alignment'] == 'left'
        assert info['columns'] == [1, 1]

    def test_full_row_has_no_alignment(self):
        """Test that a full row has no alignment."""
        row = [_item('a', 25, 'left'), _item('b', 75, 'right')]
        info = describe_row(row, _width, _alignment)
        assert info['alignment'] is None
        assert info['columns'] == [1, 3]

    def test_layout_rows_serializes_items(self):
        """Test row descriptions with serialized items."""
        rows = layout_rows([_item('a', 50), _item('b', 50)], _width, _alignment, lambda i: i['name'])
        assert len(rows) == 1
        assert rows[0]['items'] == ['a', 'b']
        assert rows[0]['total_width'] == 100
