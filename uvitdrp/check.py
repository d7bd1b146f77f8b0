"""
Module to hold input-checking functions to minimize repetition
"""
import numbers
import numpy as np

class CheckException(Exception):
    pass

# String check support
string_types = (str, bytes)

# Int check support
int_types = (int, np.integer)

def _checkname(vname):
    """
    Internal check that we can use vname as a string for printing

    Args:
        vname (str): variable name
    """
    if not isinstance(vname, string_types):
        raise CheckException('vname must be a string when fed to check functions')


def _checkexc(vexc):
    """
    Internal check that we can raise from the vexc object

    Args:
        vexc (type): exception class
    """
    if not isinstance(vexc, type) or not issubclass(vexc, Exception):
        raise CheckException('vexc must be a Exception, or an object ' + \
                             'descended from one when fed to check functions')


def real_positive_scalar(var, vname, vexc):
    """
    Checks whether an object is a real positive scalar.

    Args:
        var (object): variable to check
        vname (str): name of variable for error messages
        vexc (type): exception to raise if check fails

    Returns:
        object: the checked variable
    """
    _checkname(vname)
    _checkexc(vexc)

    if not isinstance(var, numbers.Number) or isinstance(var, bool):
        raise vexc(vname + ' must be scalar')
    if not np.isrealobj(var):
        raise vexc(vname + ' must be real')
    if var <= 0:
        raise vexc(vname + ' must be positive')
    return var


def positive_scalar_integer(var, vname, vexc):
    """
    Checks whether an object is a positive scalar integer.

    Args:
        var (object): variable to check
        vname (str): name of variable for error messages
        vexc (type): exception to raise if check fails

    Returns:
        object: the checked variable
    """
    _checkname(vname)
    _checkexc(vexc)

    if not isinstance(var, int_types) or isinstance(var, bool):
        raise vexc(vname + ' must be integer')
    if var <= 0:
        raise vexc(vname + ' must be positive')
    return var


def nonnegative_scalar_integer(var, vname, vexc):
    """
    Checks whether an object is a nonnegative scalar integer.

    Args:
        var (object): variable to check
        vname (str): name of variable for error messages
        vexc (type): exception to raise if check fails

    Returns:
        object: the checked variable
    """
    _checkname(vname)
    _checkexc(vexc)

    if not isinstance(var, int_types) or isinstance(var, bool):
        raise vexc(vname + ' must be integer')
    if var < 0:
        raise vexc(vname + ' must be nonnegative')
    return var


def oneD_array(var, vname, vexc):
    """
    Checks whether an object is a 1D numpy array, or castable to one.

    Args:
        var (object): variable to check
        vname (str): name of variable for error messages
        vexc (type): exception to raise if check fails

    Returns:
        np.array: the variable as a numpy array
    """
    _checkname(vname)
    _checkexc(vexc)

    var = np.asarray(var)
    if var.ndim != 1:
        raise vexc(vname + ' must be a 1D array')
    if not np.isrealobj(var):
        raise vexc(vname + ' must be a real array')
    return var


def same_length(arrays, vname, vexc):
    """
    Checks that a sequence of arrays all share the same first dimension.

    Args:
        arrays (list): list of array-likes
        vname (str): name of the group of variables for error messages
        vexc (type): exception to raise if check fails

    Returns:
        int: the common length
    """
    _checkname(vname)
    _checkexc(vexc)

    lengths = set(len(arr) for arr in arrays)
    if len(lengths) > 1:
        raise vexc('{0} must all have the same length, got lengths {1}'.format(vname, sorted(lengths)))
    return lengths.pop() if lengths else 0
