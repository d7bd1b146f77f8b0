"""
Unit tests for check.py.

Test valid here as well since most other functions rely on these for
error checking
"""
import pytest

import numpy as np

from uvitdrp import check


# Invalid values

# real positive scalar
rpslist = [1j, None, (1.,), [5, 5], 'txt', -1, 0, True]
# nonnegative scalar integer
nsilist = [1j, None, (1.,), [5, 5], 'txt', -1, 1.0, True]
# positive scalar integer
psilist = [1j, None, (1.,), [5, 5], 'txt', -1, 0, 1.0, True]
# 1D array
oneDlist = [np.ones((5, 4)), np.ones((5, 5, 5)), 'foo', 1j*np.ones(5)]


class TestCheckException(Exception):
    __test__ = False # prevent PytestCollectionWarning
    pass


@pytest.mark.parametrize("good", [1, 0.5, np.float32(3.), np.int64(2)])
def test_real_positive_scalar_good(good):
    assert check.real_positive_scalar(good, 'rps', TestCheckException) == good


@pytest.mark.parametrize("bad", rpslist)
def test_real_positive_scalar_bad(bad):
    with pytest.raises(TestCheckException):
        check.real_positive_scalar(bad, 'rps', TestCheckException)


@pytest.mark.parametrize("good", [1, 7, np.int16(3)])
def test_positive_scalar_integer_good(good):
    assert check.positive_scalar_integer(good, 'psi', TestCheckException) == good


@pytest.mark.parametrize("bad", psilist)
def test_positive_scalar_integer_bad(bad):
    with pytest.raises(TestCheckException):
        check.positive_scalar_integer(bad, 'psi', TestCheckException)


@pytest.mark.parametrize("good", [0, 1, np.int32(999)])
def test_nonnegative_scalar_integer_good(good):
    assert check.nonnegative_scalar_integer(good, 'nsi', TestCheckException) == good


@pytest.mark.parametrize("bad", nsilist)
def test_nonnegative_scalar_integer_bad(bad):
    with pytest.raises(TestCheckException):
        check.nonnegative_scalar_integer(bad, 'nsi', TestCheckException)


def test_oneD_array_good():
    """
    Lists are converted to arrays
    """
    arr = check.oneD_array([1., 2., 3.], 'oneD', TestCheckException)
    assert isinstance(arr, np.ndarray)
    assert arr.shape == (3,)


@pytest.mark.parametrize("bad", oneDlist)
def test_oneD_array_bad(bad):
    with pytest.raises(TestCheckException):
        check.oneD_array(bad, 'oneD', TestCheckException)


def test_same_length():
    assert check.same_length([np.zeros(4), [1, 2, 3, 4], np.ones((4, 2))], 'cols', TestCheckException) == 4
    assert check.same_length([], 'cols', TestCheckException) == 0
    with pytest.raises(TestCheckException):
        check.same_length([np.zeros(4), np.zeros(3)], 'cols', TestCheckException)


def test_bad_vname_and_vexc():
    """
    Check functions refuse to run with a bad name or exception type
    """
    with pytest.raises(check.CheckException):
        check.positive_scalar_integer(1, 5, TestCheckException)
    with pytest.raises(check.CheckException):
        check.positive_scalar_integer(1, 'psi', 'not an exception')
    with pytest.raises(check.CheckException):
        check.oneD_array([1.], 'oneD', ValueError('instance, not class'))
