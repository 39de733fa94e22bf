import json

import pytest

from helpers import BADGE_MANIFEST


@pytest.fixture
def workspace(tmp_path):
    """Workspace directory with a root custom-elements.json."""
    with open(tmp_path / "custom-elements.json", "w") as f:
        json.dump(BADGE_MANIFEST, f)
    return tmp_path
