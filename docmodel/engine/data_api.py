"""
Legacy storage engine speaking the MongoDB Atlas Data API: Extended JSON over HTTPS.
Atlas stopped serving the Data API in September 2025; new deployments use
:any:`MongoEngine`, which goes through the native driver.

Each operation is a ``POST {endpoint}/action/{action}``. Operations the API has no
action for are composed from the ones it has; such compositions are not atomic.
"""
import threading
from time import time

from requests import Request, Session
from requests.adapters import HTTPAdapter

from docmodel import __version__ as pkg_version
from docmodel._json import parse_json_or_none, to_json
from docmodel._util import no_null_values
from docmodel.errors import DocumentNotFound, StorageError, UnexpectedError, VersionConflict, _get_or_raise
from docmodel.request_result import RequestResult
from docmodel.engine._matching import is_operator_update, normalize_fields, normalize_sort, upsert_seed
from docmodel.engine.base import CollectionHandle, StorageEngine, geo_near_pipeline


class _Counter(object):
  def __init__(self, init_value=0):
    self.lock = threading.Lock()
    self.counter = init_value

  def __str__(self):
    return "Counter(%s)" % self.counter

  def get_and_increment(self):
    with self.lock:
      counter = self.counter
      self.counter += 1
      return counter

  def decrement(self):
    with self.lock:
      self.counter -= 1
      return self.counter


class DataApiClient(object):
  """
  Directly communicates with the Data API via Extended JSON.

  :class:`~bson.objectid.ObjectId`, :class:`datetime` and bytes values are converted
  on the way out and back in.
  All methods return the parsed JSON response.
  """

  # pylint: disable=too-many-arguments, too-many-instance-attributes
  def __init__(
      self,
      api_key,
      endpoint,
      data_source,
      database,
      timeout=60,
      observer=None,
      pool_connections=10,
      pool_maxsize=10,
      **kwargs):
    """
    :param api_key:
      Data API key, sent in the ``api-key`` header.
    :param endpoint:
      Base URL of the Data API, e.g. ``https://data.mongodb-api.com/app/<app id>/endpoint/data/v1``.
    :param data_source:
      Name of the cluster.
    :param database:
      Database holding the model collections.
    :param timeout:
      Read timeout in seconds.
    :param observer:
      Callback that will be passed a :any:`RequestResult` after every completed request.
    :param pool_connections:
      The number of connection pools to cache.
    :param pool_maxsize:
      The maximum number of connections to save in the pool.
    """
    self.api_key = api_key
    self.base_url = self._normalize_endpoint(endpoint)
    self.data_source = data_source
    self.database = database
    self.timeout = timeout
    self.observer = observer

    self.pool_connections = pool_connections
    self.pool_maxsize = pool_maxsize

    if ('session' not in kwargs) or ('counter' not in kwargs):
      self.session = Session()
      self.session.mount('https://', HTTPAdapter(pool_connections=pool_connections,
                                                 pool_maxsize=pool_maxsize))
      self.session.mount('http://', HTTPAdapter(pool_connections=pool_connections,
                                                pool_maxsize=pool_maxsize))
      self.counter = _Counter(1)

      self.session.headers.update({
        "Accept": "application/ejson",
        "Accept-Encoding": "gzip",
        "Content-Type": "application/ejson",
        "User-Agent": "docmodel-python/%s" % pkg_version,
      })
    else:
      self.session = kwargs['session']
      self.counter = kwargs['counter']

  def _normalize_endpoint(self, endpoint):
    return endpoint.rstrip("/\\")

  def __del__(self):
    if getattr(self, "counter", None) is not None and self.counter.decrement() == 0:
      self.session.close()

  def action(self, action, collection, body=None):
    """
    Runs one Data API action against ``collection``.

    :param action: e.g. ``"find"``, ``"insertOne"``, ``"aggregate"``.
    :param body: Action specific fields; None values are left out.
    :return: Parsed response.
    """
    data = {
      "dataSource": self.data_source,
      "database": self.database,
      "collection": collection,
    }
    data.update(no_null_values(body or {}))
    return self._execute("POST", "action/" + action, data)

  def new_session_client(self, database=None, observer=None):
    """
    Create a new client sharing this client's connection pool,
    optionally for another database or with another observer.
    """
    if self.counter.get_and_increment() > 0:
      return DataApiClient(api_key=self.api_key,
                           endpoint=self.base_url,
                           data_source=self.data_source,
                           database=database or self.database,
                           timeout=self.timeout,
                           observer=observer or self.observer,
                           session=self.session,
                           counter=self.counter,
                           pool_connections=self.pool_connections,
                           pool_maxsize=self.pool_maxsize)
    else:
      raise UnexpectedError(
        "Cannot create a session client from a closed session", None)

  def _execute(self, action, path, data):
    """Performs an HTTP action, logs it, and looks for errors."""
    start_time = time()
    response = self._perform_request(action, path, data)
    end_time = time()

    response_raw = response.text
    response_content = parse_json_or_none(response_raw)

    request_result = RequestResult(
      action, path, data,
      response_raw, response_content, response.status_code, response.headers,
      start_time, end_time)

    if self.observer is not None:
      self.observer(request_result)

    if response_content is None:
      raise UnexpectedError("Invalid JSON.", request_result)

    StorageError.raise_for_status_code(request_result)
    return response_content

  def _perform_request(self, action, path, data):
    """Performs an HTTP action."""
    url = self.base_url + "/" + path
    req = Request(action, url, data=to_json(data), headers={"api-key": self.api_key})
    return self.session.send(self.session.prepare_request(req), timeout=self.timeout)


class DataApiEngine(StorageEngine):
  """:any:`StorageEngine` backed by a :any:`DataApiClient`."""

  def __init__(self, client):
    self.client = client

  def register(self, collection, schema, options):
    return DataApiCollection(self.client, collection, schema, options)


class DataApiCollection(CollectionHandle):
  """:any:`CollectionHandle` of the :any:`DataApiEngine`."""

  def __init__(self, client, collection, schema, options):
    super(DataApiCollection, self).__init__(collection, schema, options)
    self.client = client

  def _action(self, action, body=None):
    return self.client.action(action, self.collection, body)

  #region Reads
  def find(self, conditions, fields=None, options=None):
    options = options or {}
    response = self._action("find", {
      "filter": conditions,
      "projection": normalize_fields(fields),
      "sort": dict(normalize_sort(options.get("sort"))) or None,
      "skip": options.get("skip"),
      "limit": options.get("limit"),
    })
    return _get_or_raise(None, response, "documents")

  def find_one(self, conditions, fields=None, options=None):
    options = options or {}
    if options.get("sort") or options.get("skip"):
      options = dict(options)
      options["limit"] = 1
      found = self.find(conditions, fields, options)
      return found[0] if found else None
    response = self._action("findOne", {
      "filter": conditions,
      "projection": normalize_fields(fields),
    })
    return _get_or_raise(None, response, "document")

  def count(self, conditions):
    found = self.aggregate([{"$match": conditions}, {"$count": "count"}])
    return found[0]["count"] if found else 0

  def distinct(self, field, conditions):
    found = self.aggregate([
      {"$match": conditions},
      {"$unwind": {"path": "$" + field, "preserveNullAndEmptyArrays": False}},
      {"$group": {"_id": "$" + field}},
    ])
    return [group["_id"] for group in found if group["_id"] is not None]

  def aggregate(self, pipeline):
    return _get_or_raise(None, self._action("aggregate", {"pipeline": pipeline}), "documents")

  def geo_near(self, point, options):
    """Runs a ``$geoNear`` stage against the collection's 2d index."""
    return self.aggregate(geo_near_pipeline(point, options))
  #endregion

  #region Writes
  def create(self, doc):
    self.check_strict(doc)
    doc = dict(doc)
    doc.setdefault(self.version_key, 0)
    response = self._action("insertOne", {"document": doc})
    doc["_id"] = _get_or_raise(None, response, "insertedId")
    return doc

  def update(self, conditions, doc, options=None):
    options = options or {}
    response = self._action("updateMany" if options.get("multi") else "updateOne", {
      "filter": conditions,
      "update": doc if is_operator_update(doc) else {"$set": doc},
      "upsert": True if options.get("upsert") else None,
    })
    result = {
      "matched": _get_or_raise(None, response, "matchedCount"),
      "modified": _get_or_raise(None, response, "modifiedCount"),
    }
    if response.get("upsertedId") is not None:
      result["upserted"] = 1
    return result

  def find_one_and_update(self, conditions, update, options=None):
    options = options or {}
    original = self.find_one(conditions, None, {"sort": options.get("sort")})
    if original is None:
      if not options.get("upsert"):
        return None
      response = self.update(conditions, update, {"upsert": True})
      if not options.get("new"):
        return None
      seeded = upsert_seed(conditions)
      return self.find_one(seeded) if response.get("upserted") else None

    self.update({"_id": original["_id"]}, update)
    if options.get("new"):
      return self.find_one({"_id": original["_id"]})
    return original

  def find_one_and_remove(self, conditions, options=None):
    options = options or {}
    original = self.find_one(conditions, None, {"sort": options.get("sort")})
    if original is None:
      return None
    self._action("deleteOne", {"filter": {"_id": original["_id"]}})
    return original

  def save(self, record, new=False, increment=False):
    if new:
      return self.create(record)

    self.check_strict(record)
    replacement = dict(record)
    selector = {"_id": record["_id"]}
    if increment:
      selector[self.version_key] = record.get(self.version_key, 0)
      replacement[self.version_key] = record.get(self.version_key, 0) + 1

    response = self._action("replaceOne", {"filter": selector, "replacement": replacement})
    if _get_or_raise(None, response, "matchedCount") == 0:
      if increment:
        raise VersionConflict(
          "Record %s is no longer at version %s" % (record["_id"], selector[self.version_key]))
      raise DocumentNotFound("No record with _id %s in collection %s" % (record["_id"], self.collection))
    return replacement

  def remove(self, record):
    response = self._action("deleteOne", {"filter": {"_id": record.get("_id")}})
    if _get_or_raise(None, response, "deletedCount") == 0:
      raise DocumentNotFound("No record with _id %s in collection %s" % (record.get("_id"), self.collection))
  #endregion
