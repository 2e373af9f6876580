from datetime import date, datetime, timedelta, timezone
from unittest import TestCase

from bson import ObjectId

from docmodel._json import parse_json, parse_json_or_none, to_json
from docmodel.errors import UnexpectedError


class DeserializationTest(TestCase):
  def test_plain(self):
    self.assertEqual(parse_json('{"a": [1, 2.5, "x", null, true]}'), {"a": [1, 2.5, "x", None, True]})

  def test_object_id(self):
    self.assertEqual(parse_json('{"$oid": "5f1d7a3b9c1e4a2b3c4d5e6f"}'), ObjectId("5f1d7a3b9c1e4a2b3c4d5e6f"))

  def test_date(self):
    expected = datetime(2021, 3, 4, 5, 6, 7, 8000, tzinfo=timezone.utc)
    self.assertEqual(parse_json('{"$date": "2021-03-04T05:06:07.008Z"}'), expected)
    self.assertEqual(parse_json('{"$date": 1614834367008}'), expected)
    self.assertEqual(parse_json('{"$date": {"$numberLong": "1614834367008"}}'), expected)
    self.assertEqual(parse_json('{"$date": "2021-03-04T05:06:07.008Z"}').tzinfo, timezone.utc)

  def test_numbers(self):
    self.assertEqual(parse_json('{"$numberLong": "9007199254740993"}'), 9007199254740993)
    self.assertEqual(parse_json('{"$numberInt": "7"}'), 7)
    self.assertEqual(parse_json('{"$numberDouble": "1.5"}'), 1.5)

  def test_binary(self):
    self.assertEqual(parse_json('{"$binary": {"base64": "AQID", "subType": "00"}}'), b"\x01\x02\x03")

  def test_nested(self):
    self.assertEqual(parse_json('{"owner": {"_id": {"$oid": "5f1d7a3b9c1e4a2b3c4d5e6f"}, "name": "Ann"}}'),
                     {"owner": {"_id": ObjectId("5f1d7a3b9c1e4a2b3c4d5e6f"), "name": "Ann"}})

  def test_invalid(self):
    self.assertIsNone(parse_json_or_none("{"))
    self.assertIsNone(parse_json_or_none(""))
    self.assertIsNone(parse_json_or_none('{"$oid": "5f1d7a3b9c1e4a2b3c4d5e6f", "other": 1}'))


class SerializationTest(TestCase):
  def test_object_id(self):
    self.assertEqual(to_json({"_id": ObjectId("5f1d7a3b9c1e4a2b3c4d5e6f")}),
                     '{"_id":{"$oid":"5f1d7a3b9c1e4a2b3c4d5e6f"}}')

  def test_dates(self):
    self.assertEqual(to_json(datetime(2021, 3, 4, 5, 6, 7, 8999, tzinfo=timezone.utc)),
                     '{"$date":"2021-03-04T05:06:07.008Z"}')
    self.assertEqual(to_json(datetime(2021, 3, 4)), '{"$date":"2021-03-04T00:00:00Z"}')

    local = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone(timedelta(hours=2)))
    self.assertEqual(parse_json(to_json(local)), datetime(2021, 3, 4, 3, 6, 7, tzinfo=timezone.utc))

  def test_bytes(self):
    self.assertEqual(to_json(b"\x01\x02\x03"), '{"$binary":{"base64":"AQID","subType":"00"}}')

  def test_pretty(self):
    self.assertEqual(to_json({"b": 1, "a": [1]}, pretty=True), '{\n  "a": [\n    1\n  ], \n  "b": 1\n}')
    self.assertEqual(to_json({"b": 1, "a": 2}, sort_keys=True), '{"a":2,"b":1}')

  def test_unserializable(self):
    self.assertRaises(UnexpectedError, lambda: to_json({"a": object()}))
    self.assertRaises(UnexpectedError, lambda: to_json({"a": date(2021, 3, 4)}))

  def test_round_trip(self):
    record = {
      "_id": ObjectId(),
      "born": datetime(2000, 1, 1, tzinfo=timezone.utc),
      "photo": b"\xff",
      "tags": ["a", {"nested": ObjectId()}],
    }
    self.assertEqual(parse_json(to_json(record)), record)
