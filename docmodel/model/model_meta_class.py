from bson import ObjectId

from ..deprecated import deprecated
from ..errors import ConfigurationError
from ._scope import hierarchy_conditions, hydrate_many, hydrate_one, scope_conditions, tag_upsert
from .field import Field
from .registry import ERRORS, SchemaEntry
from .schema import Schema


class _FieldProperty(property):
  """Property generated for a :any:`Field`. Told apart from ordinary class attributes."""
  pass


_INSTANCE_STATE = ("_attributes", "_is_new", "_increment", "_schema_entry")


def _coerce_id(value):
  if isinstance(value, str) and ObjectId.is_valid(value):
    return ObjectId(value)
  return value


class ModelMetaClass(type):
  """
  All Model subclasses have some abilities of their own.
  When a class is declared, its Fields become its schema, and it gets properties for them.

  So in::

    class Animal(Model):
      __model_name__ = "Animal"
      name = Field(str)

    class Dog(Animal):
      __model_name__ = "Dog"
      breed = Field(str)

  Animal has a schema with ``name``; Dog's schema extends it with ``breed``,
  and Dog records live in Animal's collection, tagged ``{"_type": "Dog"}``.
  A subclass declaring no Fields uses its parent's schema unchanged.

  The methods here are called on model classes (**not** on their instances).
  """

  def __init__(cls, name, bases, dct):
    # pylint: disable=bad-mcs-method-argument
    super(ModelMetaClass, cls).__init__(name, bases, dct)

    own_fields = dict((key, value) for key, value in dct.items() if isinstance(value, Field))
    options = dct.get("__schema_options__") or {}

    if not own_fields:
      if options:
        raise ConfigurationError(
          "%s sets __schema_options__ but declares no fields" % name)
      return

    parent = cls._schema_entry
    if parent is None:
      schema = Schema(own_fields, options)
    else:
      schema = parent.schema.extend(own_fields, options)

    for field_name in own_fields:
      cls._check_field_name(field_name, schema)

    entry = SchemaEntry(cls, getattr(cls, "__model_name__", None), schema, parent)
    type.__setattr__(cls, "_schema_entry", entry)
    cls.__registry__.add(entry)

    for field_name in own_fields:
      cls._add_field(field_name)

  def __setattr__(cls, key, value):
    if isinstance(value, Field):
      raise ConfigurationError(
        "The schema of %s is fixed when the class is declared; can not add field %s" %
        (cls.__name__, key))
    super(ModelMetaClass, cls).__setattr__(key, value)

  #region Schema
  @property
  def fields(cls):
    """Dict {field_name: :any:`Field`} of the effective schema; empty for a schema-less class."""
    return dict(cls._schema_entry.schema.fields) if cls.has_schema() else {}

  def get_name(cls):
    """
    Model name; the discriminator value of records saved through this class.
    A subclass without fields of its own has the name of the class whose schema it uses.
    """
    return cls._schema_entry.name if cls.has_schema() else cls.__model_name__

  def has_schema(cls):
    """True if this class or an ancestor declares fields."""
    return cls._schema_entry is not None

  def get_schema(cls):
    """Effective :any:`Schema`, or None for a schema-less class."""
    return cls._require_entry().schema if cls.has_schema() else None

  def get_collection_name(cls):
    return cls._require_entry().collection

  def get_discriminator_key(cls):
    return cls._require_entry().discriminator_key

  def compile(cls):
    """
    Registers the schema with the storage engine. Does nothing if already compiled.

    :return: The :any:`CollectionHandle` queries go through.
    """
    entry = cls._require_entry()
    return entry.model.__registry__.compile(entry)

  def is_compiled(cls):
    return cls.has_schema() and cls._schema_entry.is_compiled()

  def get_storage_handle(cls):
    """The compiled :any:`CollectionHandle`, or None if not compiled yet."""
    return cls._schema_entry.handle if cls.has_schema() else None

  def hierarchy_filter(cls):
    """
    Condition matching this class's records and those of its schema-bearing subclasses.
    Queries are scoped to the issuing class only; pass this to widen them, e.g.
    ``Animal.find(Animal.hierarchy_filter())``.
    """
    return hierarchy_conditions(cls._require_entry())
  #endregion

  #region Queries
  def find(cls, conditions=None, fields=None, options=None):
    """
    Finds records matching ``conditions``.

    :param fields: Projection; a dict, a list of names or a space separated string.
    :param options: Dict with ``sort``, ``skip`` and ``limit``.
    :return: List of instances.
    """
    records = cls.compile().find(cls._scope(conditions), fields, options)
    return hydrate_many(cls, records)

  @deprecated("find()")
  def get_all(cls):
    return cls.find()

  def find_one(cls, conditions=None, fields=None, options=None):
    """Finds one record. Returns an instance or None."""
    record = cls.compile().find_one(cls._scope(conditions), fields, options)
    return hydrate_one(cls, record)

  def find_by_id(cls, id, fields=None, options=None):
    """Finds a record by its ``_id``. Hex strings are taken as :class:`~bson.objectid.ObjectId`."""
    # pylint: disable=redefined-builtin
    return cls.find_one({"_id": _coerce_id(id)}, fields, options)

  def count(cls, conditions=None):
    """Number of matching records."""
    return cls.compile().count(cls._scope(conditions))

  def distinct(cls, field, conditions=None):
    """Distinct values of ``field`` among matching records."""
    return cls.compile().distinct(field, cls._scope(conditions))

  def find_one_and_update(cls, conditions, update, options=None):
    """
    Updates the first matching record.

    :param options: ``new`` to get the updated record back instead of the original, ``upsert``.
      A record inserted by ``upsert`` is tagged with this class's name.
    :return: An instance or None.
    """
    handle = cls.compile()
    record = handle.find_one_and_update(cls._scope(conditions), cls._upserting(update, options), options)
    return hydrate_one(cls, record)

  def find_by_id_and_update(cls, id, update, options=None):
    # pylint: disable=redefined-builtin
    return cls.find_one_and_update({"_id": _coerce_id(id)}, update, options)

  def find_one_and_remove(cls, conditions, options=None):
    """Removes the first matching record and returns it as an instance, or None."""
    record = cls.compile().find_one_and_remove(cls._scope(conditions), options)
    return hydrate_one(cls, record)

  def find_by_id_and_remove(cls, id, options=None):
    # pylint: disable=redefined-builtin
    return cls.find_one_and_remove({"_id": _coerce_id(id)}, options)

  def create(cls, doc):
    """
    Builds an instance from ``doc`` and stores it right away.
    ``doc`` may also be a list of dicts, in which case a list of instances is returned.
    """
    if isinstance(doc, list):
      return [cls.create(item) for item in doc]
    handle = cls.compile()
    return hydrate_one(cls, handle.create(cls(doc).to_record()))

  def update(cls, conditions, doc, options=None):
    """
    Updates matching records without returning them.
    A ``doc`` without ``$`` operators is applied as ``$set``.

    :param options: ``multi`` to update every match instead of the first, ``upsert``.
      A record inserted by ``upsert`` is tagged with this class's name.
    :return: ``{"matched": n, "modified": n}``.
    """
    handle = cls.compile()
    return handle.update(cls._scope(conditions), cls._upserting(doc, options), options)

  def map_reduce(cls, spec):
    """
    Runs ``spec["map"]`` over matching records and ``spec["reduce"]`` over each key's values.
    The ``query`` input filter is scoped like any other condition.

    :return: List of ``{"_id": key, "value": reduced}``.
    """
    spec = dict(spec)
    spec["query"] = cls._scope(spec.get("query"))
    return cls.compile().map_reduce(spec)

  def geo_near(cls, point, options=None):
    """
    Records ordered by distance from ``point``; the distance is added under
    ``options["distance_field"]`` (default ``"dis"``). ``options["query"]`` is scoped.
    """
    options = dict(options or {})
    options["query"] = cls._scope(options.get("query"))
    return hydrate_many(cls, cls.compile().geo_near(point, options))

  def geo_search(cls, conditions=None, options=None):
    """Matching records within ``options["max_distance"]`` of ``options["near"]``."""
    return hydrate_many(cls, cls.compile().geo_search(cls._scope(conditions), options or {}))

  def aggregate(cls, pipeline):
    """
    Runs an aggregation pipeline and returns the raw result records.

    The pipeline is passed through untouched: it is **not** narrowed to this class.
    Start it with ``{"$match": {discriminator_key: name}}`` to get that.
    """
    return cls.compile().aggregate(pipeline)

  def populate(cls, docs, path, model=None):
    """
    Replaces the ids stored under ``path`` in each of ``docs`` with the records they refer to.

    :param docs: Instances of this class (or raw records), or a single one.
    :param model: Model class of the referenced records. Defaults to this class.
      Its discriminator scoping applies to the lookup.
    :return: Instances with populated ``path``; a single instance if one was given.
    """
    target = model or cls
    single = not isinstance(docs, list)
    records = [doc.to_record() if hasattr(doc, "to_record") else doc for doc in ([docs] if single else docs)]

    populated = cls.compile().populate(records, {
      "path": path,
      "source": target.compile(),
      "match": target._scope({}),
    })

    instances = hydrate_many(cls, populated)
    for instance in instances:
      value = instance.get(path)
      if isinstance(value, list):
        instance.set(path, [hydrate_one(target, item) if isinstance(item, dict) else item for item in value])
      elif isinstance(value, dict):
        instance.set(path, hydrate_one(target, value))
    return instances[0] if single and instances else instances
  #endregion

  #region Private
  def _require_entry(cls):
    if cls._schema_entry is None:
      raise ConfigurationError(ERRORS["no_schema"])
    return cls._schema_entry

  def _scope(cls, conditions):
    return scope_conditions(cls._require_entry(), conditions)

  def _upserting(cls, update, options):
    if options and options.get("upsert"):
      return tag_upsert(cls._require_entry(), update)
    return update

  def _from_record(cls, record):
    """Given a raw record, create an instance of this class that is backed by it."""
    # pylint: disable=protected-access
    instance = cls(cls._decode_record(record))
    instance._is_new = False
    return instance

  def _decode_record(cls, record):
    fields = cls._require_entry().schema.fields
    decoded = {}
    for key, value in record.items():
      field = fields.get(key)
      decoded[key] = value if field is None or field.codec is None else field.codec.decode(value)
    return decoded

  def _check_field_name(cls, field_name, schema):
    if field_name in (schema.discriminator_key, schema.version_key, "_id"):
      raise ConfigurationError("Forbidden field name %s; it is managed by the model." % field_name)
    if field_name in _INSTANCE_STATE:
      raise ConfigurationError("Forbidden field name %s; it holds the state of every instance." % field_name)
    if hasattr(ModelMetaClass, field_name):
      raise ConfigurationError(
        "Forbidden field name %s; it would hide the class method %s." % (field_name, field_name))
    for base in cls.__mro__[1:]:
      attribute = base.__dict__.get(field_name)
      if attribute is not None and not isinstance(attribute, _FieldProperty):
        raise ConfigurationError(
          "Forbidden field name %s; it would hide %s.%s." % (field_name, base.__name__, field_name))

  def _add_field(cls, field_name):
    """Replace the Field class attribute with a property reading and writing the attribute bag."""
    # pylint: disable=missing-docstring

    def getter(self):
      return self.get(field_name)

    def setter(self, value):
      self.set(field_name, value)

    def deleter(self):
      self.unset(field_name)

    type.__setattr__(cls, field_name, _FieldProperty(getter, setter, deleter))
  #endregion
