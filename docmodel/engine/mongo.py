"""
Storage engine over a MongoDB deployment, through the ``pymongo`` driver.

Every model collection is a :class:`pymongo.collection.Collection` of one database.
``find_one_and_update`` and ``find_one_and_remove`` run as single atomic commands.
Driver errors are raised as :any:`StorageError`.
"""
from contextlib import contextmanager
from logging import getLogger

from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from docmodel._util import no_null_values
from docmodel.errors import DocumentNotFound, DuplicateKey, StorageError, VersionConflict
from docmodel.engine._matching import is_operator_update, normalize_fields, normalize_sort
from docmodel.engine.base import CollectionHandle, StorageEngine, geo_near_pipeline

logger = getLogger(__name__)


@contextmanager
def _storage_errors(collection):
  try:
    yield
  except DuplicateKeyError as error:
    raise DuplicateKey("Duplicate key in collection %s: %s" % (collection, error))
  except PyMongoError as error:
    raise StorageError("Operation on collection %s failed: %s" % (collection, error))


def _sort(sort):
  """Sort spec as the driver takes it: a list of (path, 1 or -1), or None."""
  pairs = normalize_sort(sort)
  if not pairs:
    return None
  return [(path, -1 if direction in (-1, "desc", "descending") else 1) for path, direction in pairs]


def _as_update(doc):
  return doc if is_operator_update(doc) else {"$set": doc}


class MongoEngine(StorageEngine):
  """
  :any:`StorageEngine` over one :class:`pymongo.database.Database`.

  Use it like::

    engine = MongoEngine.from_uri("mongodb://localhost:27017", "zoo")
    connect(engine)
    Animal.find({})  # runs a find on zoo.Animal

  :param database: The database model collections live in.
  """

  def __init__(self, database):
    self.database = database

  @classmethod
  def from_uri(cls, uri, database, **client_options):
    """
    Opens a :class:`pymongo.MongoClient` for ``uri`` and uses its ``database``.
    ``client_options`` are passed to the client unchanged.
    """
    return cls(MongoClient(uri, **client_options)[database])

  def register(self, collection, schema, options):
    logger.debug("Registering model %s on %s.%s", options["name"], self.database.name, collection)
    return MongoCollection(self.database[collection], collection, schema, options)

  def close(self):
    """Closes the connections of the client behind the database."""
    self.database.client.close()


class MongoCollection(CollectionHandle):
  """:any:`CollectionHandle` of the :any:`MongoEngine`, around one driver collection."""

  def __init__(self, native, collection, schema, options):
    super(MongoCollection, self).__init__(collection, schema, options)
    self.native = native
    """The :class:`pymongo.collection.Collection` operations run on."""

  #region Reads
  def find(self, conditions, fields=None, options=None):
    options = options or {}
    cursor_options = no_null_values({
      "sort": _sort(options.get("sort")),
      "skip": options.get("skip") or None,
      "limit": options.get("limit") or None,
    })
    with _storage_errors(self.collection):
      return list(self.native.find(conditions, normalize_fields(fields), **cursor_options))

  def find_one(self, conditions, fields=None, options=None):
    options = options or {}
    cursor_options = no_null_values({
      "sort": _sort(options.get("sort")),
      "skip": options.get("skip") or None,
    })
    with _storage_errors(self.collection):
      return self.native.find_one(conditions, normalize_fields(fields), **cursor_options)

  def count(self, conditions):
    with _storage_errors(self.collection):
      return self.native.count_documents(conditions)

  def distinct(self, field, conditions):
    with _storage_errors(self.collection):
      return [value for value in self.native.distinct(field, conditions) if value is not None]

  def aggregate(self, pipeline):
    with _storage_errors(self.collection):
      return list(self.native.aggregate(pipeline))

  def geo_near(self, point, options):
    """Runs a ``$geoNear`` stage against the collection's geospatial index."""
    return self.aggregate(geo_near_pipeline(point, options))
  #endregion

  #region Writes
  def create(self, doc):
    self.check_strict(doc)
    doc = dict(doc)
    doc.setdefault(self.version_key, 0)
    with _storage_errors(self.collection):
      doc["_id"] = self.native.insert_one(doc).inserted_id
    return doc

  def update(self, conditions, doc, options=None):
    options = options or {}
    method = self.native.update_many if options.get("multi") else self.native.update_one
    with _storage_errors(self.collection):
      response = method(conditions, _as_update(doc), upsert=bool(options.get("upsert")))
    result = {"matched": response.matched_count, "modified": response.modified_count}
    if response.upserted_id is not None:
      result["upserted"] = 1
    return result

  def find_one_and_update(self, conditions, update, options=None):
    options = options or {}
    with _storage_errors(self.collection):
      return self.native.find_one_and_update(
        conditions, _as_update(update),
        sort=_sort(options.get("sort")),
        upsert=bool(options.get("upsert")),
        return_document=ReturnDocument.AFTER if options.get("new") else ReturnDocument.BEFORE)

  def find_one_and_remove(self, conditions, options=None):
    options = options or {}
    with _storage_errors(self.collection):
      return self.native.find_one_and_delete(conditions, sort=_sort(options.get("sort")))

  def save(self, record, new=False, increment=False):
    if new:
      return self.create(record)

    self.check_strict(record)
    replacement = dict(record)
    selector = {"_id": record["_id"]}
    if increment:
      selector[self.version_key] = record.get(self.version_key, 0)
      replacement[self.version_key] = record.get(self.version_key, 0) + 1

    with _storage_errors(self.collection):
      response = self.native.replace_one(selector, replacement)
    if response.matched_count == 0:
      if increment:
        raise VersionConflict(
          "Record %s is no longer at version %s" % (record["_id"], selector[self.version_key]))
      raise DocumentNotFound("No record with _id %s in collection %s" % (record["_id"], self.collection))
    return replacement

  def remove(self, record):
    with _storage_errors(self.collection):
      response = self.native.delete_one({"_id": record.get("_id")})
    if response.deleted_count == 0:
      raise DocumentNotFound("No record with _id %s in collection %s" % (record.get("_id"), self.collection))
  #endregion
