from collections import namedtuple
from unittest import TestCase

from requests import codes

from docmodel._json import parse_json, to_json
from docmodel.engine.data_api import DataApiClient, _Counter
from docmodel.engine.memory import MemoryCollection, MemoryEngine
from docmodel.model.registry import ModelRegistry

Call = namedtuple("Call", ["model", "operation", "args"])

_RECORDED = (
  "find", "find_one", "count", "distinct", "aggregate",
  "create", "update", "find_one_and_update", "find_one_and_remove",
  "map_reduce", "geo_near", "geo_search", "populate", "save", "remove",
)


class RecordingEngine(MemoryEngine):
  """MemoryEngine that records every handle call, and can be told to fail them."""

  def __init__(self):
    super(RecordingEngine, self).__init__()
    self.calls = []
    self.failure = None

  def register(self, collection, schema, options):
    with self.lock:
      self.collections.setdefault(collection, {})
      self.registered.append((collection, options["name"]))
    return RecordingCollection(self, collection, schema, options)

  def calls_to(self, operation):
    return [call for call in self.calls if call.operation == operation]


class RecordingCollection(MemoryCollection):
  pass


def _recording(operation):
  def method(self, *args, **kwargs):
    self.engine.calls.append(Call(self.name, operation, args))
    if self.engine.failure is not None:
      raise self.engine.failure
    return getattr(MemoryCollection, operation)(self, *args, **kwargs)
  method.__name__ = operation
  return method

for _operation in _RECORDED:
  setattr(RecordingCollection, _operation, _recording(_operation))


class DocModelTestCase(TestCase):
  def setUp(self):
    super(DocModelTestCase, self).setUp()
    self.engine = RecordingEngine()
    self.registry = ModelRegistry(self.engine)

  def assert_raises(self, exception_class, action):
    """Like self.assertRaises and returns the exception too."""
    with self.assertRaises(exception_class) as cm:
      action()
    return cm.exception


def mock_client(*responses, **kwargs):
  """
  DataApiClient whose session answers with ``responses`` in order.
  Each response is a JSON-able value (sent with status 200) or a (status_code, value) pair;
  string values are sent as they are.
  """
  session = _MockSession([r if isinstance(r, tuple) else (codes.ok, r) for r in responses])
  return DataApiClient(
    api_key="secret-key",
    endpoint=kwargs.get("endpoint", "https://data.example.test/app/zoo/endpoint/data/v1"),
    data_source="Cluster0",
    database="zoo",
    observer=kwargs.get("observer"),
    session=session,
    counter=_Counter(1))


class _MockSession(object):
  def __init__(self, responses):
    self.responses = list(responses)
    self.sent = []

  def close(self):
    pass

  def prepare_request(self, request):
    return request

  def send(self, request, **kwargs):
    # pylint: disable=unused-argument
    self.sent.append(request)
    status_code, body = self.responses.pop(0)
    text = body if isinstance(body, str) else to_json(body)
    return _MockResponse(status_code, text, {"Content-Type": "application/ejson"})

  def sent_json(self, index=-1):
    return parse_json(self.sent[index].data)

  def sent_action(self, index=-1):
    return self.sent[index].url.rsplit("/", 1)[-1]


_MockResponse = namedtuple('MockResponse', ['status_code', 'text', 'headers'])
