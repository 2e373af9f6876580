from .._util import NoVal


class Field(object):
  """
  Stores information about a field in a :any:`Model`.
  The fields of a model class make up its schema. When you define::

    class Animal(Model):
      __model_name__ = "Animal"
      name = Field(str)

  :samp:`Animal` instances will have a :samp:`name` property,
  and records saved for them will have a :samp:`name` key.

  A Field can have a :any:`Codec` to translate between stored values and Python values.

  Fields are stored per-class, not per-instance, so they should be immutable.
  """

  def __init__(self, type=None, codec=None, default=NoVal):
    # pylint: disable=redefined-builtin
    self.type = type
    """Optional Python type of the value. Only descriptive; sent to the engine with the schema."""
    self.codec = codec
    """Optional :any:`Codec` for values stored in this field."""
    self.default = default
    """
    Value given to new instances that do not set this field.
    If callable, it is called with no arguments for each new instance.
    """

  def has_default(self):
    return self.default is not NoVal

  def get_default(self):
    return self.default() if callable(self.default) else self.default

  def describe(self):
    """Schema descriptor for this field, as passed to :any:`StorageEngine.register`."""
    descriptor = {}
    if self.type is not None:
      descriptor["type"] = getattr(self.type, "__name__", str(self.type))
    if self.codec is not None:
      descriptor["codec"] = self.codec.__class__.__name__.lstrip("_")
    return descriptor

  def __repr__(self):
    return "Field(type=%s, codec=%r)" % (getattr(self.type, "__name__", self.type), self.codec)
