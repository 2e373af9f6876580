import re
from setuptools import setup, find_packages
from codecs import open
from os import path

local_dir = path.abspath(path.dirname(__file__))

# Read the package metadata without importing the package (its dependencies may not be installed yet).
with open(path.join(local_dir, "docmodel", "__init__.py"), encoding="utf-8") as f:
  metadata = dict(re.findall(r'^(__\w+__) = "([^"]*)"', f.read(), re.MULTILINE))

# Load the README file for use in the long description
with open(path.join(local_dir, "README.rst"), encoding="utf-8") as f:
  long_description = f.read()

requires = [
  "pymongo",
  "requests",
]

tests_requires = [
  "nose2",
  "nose2[coverage_plugin]",
]

extras_require = {
  "doc": ["sphinx", "sphinx_rtd_theme"],
  "test": tests_requires,
  "lint": ["pylint", "pynt"],
}

setup(
  name="docmodel",
  version=metadata["__version__"],
  description="Typed document models with single-collection inheritance over a document database",
  long_description=long_description,
  author=metadata["__author__"],
  license=metadata["__license__"],
  classifiers=[
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
    "Programming Language :: Python :: 3",
    "Topic :: Database",
    "Topic :: Database :: Front-Ends",
    "Operating System :: MacOS :: MacOS X",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: Unix",
  ],
  keywords="document model odm inheritance discriminator",
  packages=find_packages(exclude=["tests", "tests.*"]),
  python_requires=">=3.7",
  install_requires=requires,
  extras_require=extras_require,
  tests_require=tests_requires,
  test_suite="nose2.collector.collector",
)
