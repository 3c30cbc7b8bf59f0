# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from collections.abc import Iterator
from pathlib import Path

import pytest
from lxml import etree

from xpathbind import clear_converters, reset_default_converters

data_directory = Path(__file__).parent / 'data'


@pytest.fixture
def sample_path() -> Path:
    return data_directory / 'sample.xml'


@pytest.fixture
def sample_xml(sample_path: Path) -> str:
    return sample_path.read_text(encoding='utf-8')


@pytest.fixture
def sample_root(sample_path: Path) -> etree._Element:
    return etree.parse(str(sample_path)).getroot()


@pytest.fixture(autouse=True)
def shared_registry() -> Iterator[None]:
    # tests that configure the shared converter registry must not affect the others
    yield
    clear_converters()
    reset_default_converters()
