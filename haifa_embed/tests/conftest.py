import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_embed import NIL, NONE, Boolean, Number, String, VirtualMachine, VMOptions


def plain(value):
    """Turn a scalar Value into the matching Python object."""
    if value is NIL or value is NONE:
        return None
    if isinstance(value, (String, Number, Boolean)):
        return value.value
    return value


@pytest.fixture
def errors():
    return []


@pytest.fixture
def vm(errors):
    machine = VirtualMachine(options=VMOptions(error_handler=errors.append))
    yield machine
    machine.close()


@pytest.fixture
def run(vm):
    def run_source(source, *args):
        return [plain(value) for value in vm.eval(source, args, chunkname="=test")]

    return run_source
