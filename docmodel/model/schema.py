from ..errors import ConfigurationError

#: Recognized keys of ``__schema_options__`` and their defaults.
#: A ``collection`` of None means "use the model name".
DEFAULT_OPTIONS = {
  "discriminator_key": "_type",
  "collection": None,
  "strict": False,
  "version_key": "__v",
}

#: Options that describe the physical collection, shared by a whole hierarchy.
HIERARCHY_OPTIONS = ("collection", "discriminator_key", "version_key")


def check_options(options):
  unknown = sorted(set(options) - set(DEFAULT_OPTIONS))
  if unknown:
    raise ConfigurationError(
      "Unknown schema options %s; expected some of %s." % (unknown, sorted(DEFAULT_OPTIONS)))


class Schema(object):
  """
  The field definitions and options of a model class.

  A root model builds its Schema from its own fields.
  A model extending a schema-bearing model calls :any:`extend` on the parent's Schema,
  so parent fields are kept and child fields are added or override them by name.
  """

  def __init__(self, fields, options=None):
    options = options or {}
    check_options(options)
    self.fields = dict(fields)
    """Dict {field_name: :any:`Field`}."""
    self.options = dict(DEFAULT_OPTIONS)
    self.options.update(options)

  def extend(self, fields, options=None):
    """
    New Schema with this schema's fields plus ``fields``.

    Options set in ``options`` override this schema's, except the
    :samp:`HIERARCHY_OPTIONS`, which always stay the parent's.
    """
    options = options or {}
    check_options(options)
    merged_fields = dict(self.fields)
    merged_fields.update(fields)
    merged_options = dict(self.options)
    for key, value in options.items():
      if key not in HIERARCHY_OPTIONS:
        merged_options[key] = value
    return Schema(merged_fields, merged_options)

  @property
  def discriminator_key(self):
    return self.options["discriminator_key"]

  @property
  def version_key(self):
    return self.options["version_key"]

  @property
  def strict(self):
    return self.options["strict"]

  def describe(self):
    """Descriptor sent to the storage engine: {field_name: field descriptor}."""
    return {name: field.describe() for name, field in self.fields.items()}

  def __eq__(self, other):
    return isinstance(other, Schema) and \
      self.fields == other.fields and \
      self.options == other.options

  def __ne__(self, other):
    return not self == other

  def __repr__(self):
    return "Schema(fields=%s, options=%s)" % (sorted(self.fields), self.options)
