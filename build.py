from pynt import task
from subprocess import check_call

_common_lint_opts = ["--reports=n", "--indent-string='  '", "--indent-after-paren=2"]
_common_lint_disable = "invalid-name,locally-disabled,missing-docstring,too-few-public-methods"


@task()
def lint_docmodel():
  check_call(["pylint", "docmodel"] + _common_lint_opts + ["--disable=%s" % _common_lint_disable])


@task()
def lint_tests():
  test_disable = "no-member,protected-access,too-many-public-methods"
  disable = "--disable=%s,%s" % (_common_lint_disable, test_disable)
  check_call(["pylint", "tests"] + _common_lint_opts + [disable])


@task(lint_docmodel, lint_tests)
def lint():
  pass


@task()
def test():
  check_call(["nose2", "--verbose"])


@task(lint, test)
def __DEFAULT__():
  pass
