import warnings
import functools


def deprecated(replacement):
  """Marks a model operation as superseded by ``replacement``; calls still go through."""
  def decorator(old_func):

    @functools.wraps(old_func)
    def new_func(*args, **kwargs):
      warnings.warn(
        "{name} is deprecated, use {replacement} instead".format(
          name=old_func.__name__, replacement=replacement),
        category=DeprecationWarning,
        stacklevel=2
      )
      return old_func(*args, **kwargs)

    return new_func

  return decorator
