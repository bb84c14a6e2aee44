"""Shared fixtures for core unit tests"""

import pytest

from legalmd.core.parse import parse_text


SAMPLE_MD = """\
---
title: Services Agreement
client:
  name: Acme Corp
level-one: "Article %n."
---

# Preamble

This agreement is made with {{client.name}}.

l. Definitions |defs|
ll. Scope
See |defs| for terms.

```text
l. not a header {{client.name}}
```
"""


@pytest.fixture(name="sample")
def sample_fixture():
    return parse_text(SAMPLE_MD)


@pytest.fixture(name="root")
def root_fixture(sample):
    return sample.tree
