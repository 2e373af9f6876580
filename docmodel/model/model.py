from .._util import NoVal, dict_dup
from ..errors import DocumentNotFound
from .model_meta_class import ModelMetaClass
from .registry import default_registry


class Model(object, metaclass=ModelMetaClass):
  """
  Base class for all models.

  Models represent stored records.
  They link a collection of the storage engine to a Python class.

  The basic format is::

    class Animal(Model):
      __model_name__ = "Animal"
      name = Field(str)

    class Dog(Animal):
      __model_name__ = "Dog"
      breed = Field(str)

    rex = Dog({"name": "Rex", "breed": "Lab"}).save()
    Dog.find({})          # only Dog records
    Animal.find({})       # only Animal records
    Animal.find({"_type": "Dog"})

  Properties will be generated for each :any:`Field`.

  :samp:`__model_name__` names the class in the database; records of a subclass are tagged with it.
  A class without Fields (and no ancestor with Fields) is schema-less:
  its instances are plain attribute bags that can not be saved.

  :any:`connect` must be called (or :samp:`__registry__` set) before a model with fields is used.
  """

  #: Name of the model. Collection name and discriminator value default to it.
  __model_name__ = None

  #: Dict of schema options: ``discriminator_key``, ``collection``, ``strict``, ``version_key``.
  __schema_options__ = None

  #: :any:`ModelRegistry` holding this class's schema entry.
  __registry__ = default_registry

  # Filled in by ModelMetaClass for classes that declare fields.
  _schema_entry = None

  def __init__(self, attrs=None, value=NoVal, **data):
    """
    :param attrs: Dict of attributes, or the name of a single attribute.
    :param value: Value of the single attribute named by ``attrs``.
    :param data: More attributes, as keyword arguments.
    """
    # Attribute bag. The stored record is derived from it on save.
    self._attributes = {}
    self._is_new = True
    self._increment = False

    cls = self.__class__
    if cls.has_schema():
      # The first instance of a class compiles its schema.
      cls.compile()
      for field_name, field in cls.fields.items():
        if field.has_default():
          self._attributes[field_name] = field.get_default()

    self.set(attrs, value)
    self.set(data)
    self.initialize(attrs, value, **data)

  def initialize(self, *args, **kwargs):
    """Hook for subclasses, called at the end of construction with the constructor arguments."""
    pass

  #region Attributes
  def get(self, key):
    """Current value of attribute ``key``, or None."""
    return self._attributes.get(key)

  def set(self, attr, value=NoVal):
    """
    Sets one attribute, or merges a dict of attributes.
    Setting a single attribute without a value does nothing.

    :return: This instance.
    """
    if isinstance(attr, dict):
      self._attributes.update(attr)
    elif attr is not None and value is not NoVal:
      self._attributes[attr] = value
    return self

  def has(self, key):
    """True if attribute ``key`` is set. For a list of keys, all of them must be set."""
    if isinstance(key, (list, tuple, set, frozenset)):
      return all(k in self._attributes for k in key)
    return key in self._attributes

  def unset(self, key):
    """
    Removes one attribute, or each of a list of attributes. Missing ones are ignored.
    The stored record loses them on the next :any:`save`.
    """
    keys = key if isinstance(key, (list, tuple, set, frozenset)) else [key]
    for k in keys:
      self._attributes.pop(k, None)
    return self

  def attributes(self):
    """Copy of all attributes."""
    return dict_dup(self._attributes)
  #endregion

  #region Persistence
  def is_new_instance(self):
    """
    :samp:`False` if this instance is backed by a stored record.
    Set again by :any:`remove`.
    """
    return self._is_new

  def increment(self):
    """
    Signal that we desire an increment of this record's version.
    The next :any:`save` bumps the version counter and fails with :any:`VersionConflict`
    if the stored counter moved since this instance was read.
    """
    self.__class__._require_entry()
    self._increment = True
    return self

  def save(self):
    """
    Stores the full current state: inserts a new instance, replaces an existing one.
    Refreshes ``_id`` and the version counter from the stored record.
    """
    handle = self.__class__.compile()
    entry = self.__class__._schema_entry
    stored = handle.save(self.to_record(), new=self._is_new, increment=self._increment)

    self._attributes["_id"] = stored["_id"]
    if entry.version_key in stored:
      self._attributes[entry.version_key] = stored[entry.version_key]
    self._is_new = False
    self._increment = False
    return self

  def remove(self):
    """Removes the stored record. The instance keeps its attributes and counts as new again."""
    handle = self.__class__.compile()
    if self._is_new:
      raise DocumentNotFound("Instance has not been saved, so there is nothing to remove.")
    handle.remove(self.to_record())
    self._is_new = True
    return self

  def to_record(self):
    """
    The record stored for this instance: attributes with field codecs applied,
    tagged with the model name under the discriminator key.
    """
    entry = self.__class__._require_entry()
    fields = entry.schema.fields
    record = {}
    for key, value in self._attributes.items():
      field = fields.get(key)
      if field is not None and field.codec is not None:
        value = field.codec.encode(value)
      record[key] = dict_dup(value)
    record[entry.discriminator_key] = entry.name
    return record
  #endregion

  #region Standard methods
  def __eq__(self, other):
    # pylint: disable=protected-access
    return self is other or \
      (isinstance(other, Model) and self.__class__ is other.__class__ and
       self._attributes == other._attributes)

  def __ne__(self, other):
    return not self == other

  __hash__ = None

  def __repr__(self):
    attributes = ["%s=%r" % (key, value) for key, value in sorted(self._attributes.items())]
    return "%s(%s)" % (self.__class__.__name__, ", ".join(attributes))
  #endregion
