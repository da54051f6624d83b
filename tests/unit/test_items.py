"""Unit tests for input/output records."""

from ftp_batch.items import BinaryData, Item


class TestBinaryData:
    """Tests for BinaryData."""

    def test_prepare_derives_metadata(self):
        """Test that mime type and extension come from the file name."""
        binary = BinaryData.prepare(b"a,b\n", "table.CSV")

        assert binary.file_name == "table.CSV"
        assert binary.file_extension == "csv"
        assert binary.mime_type == "text/csv"
        assert binary.file_size == 4

    def test_prepare_unknown_extension(self):
        """Test the fallback mime type."""
        binary = BinaryData.prepare(b"\x00", "blob.unknownext")

        assert binary.mime_type == "application/octet-stream"

    def test_dict_round_trip_uses_base64(self):
        """Test that payloads serialize as base64."""
        binary = BinaryData.prepare(b"\xff\x00data", "x.bin")

        data = binary.to_dict()
        restored = BinaryData.from_dict(data)

        assert data["data"] == "/wBkYXRh"
        assert restored.data == b"\xff\x00data"
        assert restored.file_name == "x.bin"


class TestItem:
    """Tests for Item."""

    def test_defaults(self):
        """Test an empty record."""
        item = Item()

        assert item.json == {}
        assert item.binary == {}
        assert item.paired_item is None
        assert item.is_error is False

    def test_error_record(self):
        """Test detection of isolated failures."""
        assert Item(json={"error": "boom"}, paired_item=2).is_error

    def test_to_dict_omits_empty_parts(self):
        """Test that binary and pairedItem are only present when set."""
        assert Item(json={"a": 1}).to_dict() == {"json": {"a": 1}}

    def test_to_dict_with_binary_and_pairing(self):
        """Test the full record shape."""
        item = Item(json={}, binary={"data": BinaryData(b"hi")}, paired_item=0)

        data = item.to_dict()

        assert data["pairedItem"] == 0
        assert data["binary"]["data"]["data"] == "aGk="

    def test_from_dict_plain_payload(self):
        """Test that a dictionary without "json" is the payload."""
        item = Item.from_dict({"name": "a.txt"})

        assert item.json == {"name": "a.txt"}

    def test_from_dict_full_record(self):
        """Test restoring a serialized record."""
        item = Item.from_dict({
            "json": {"name": "a.txt"},
            "binary": {"data": {"data": "aGk=", "fileName": "a.txt"}},
            "pairedItem": 3,
        })

        assert item.binary["data"].data == b"hi"
        assert item.paired_item == 3
