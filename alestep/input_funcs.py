"""Functions for reading scheme parameter input files"""

import ast
import re

import numpy as np


def catch_input(in_dict, in_key, default_val):
    """Retrieve a scalar parameter from a parameter dictionary.

    The value is cast to the type of default_val. If in_key is missing, default_val is returned.

    Args:
        in_dict: Dictionary of input parameters.
        in_key: Key of the parameter to retrieve from in_dict.
        default_val:
            Value returned if in_key is not in in_dict. Its type defines the type the parameter is cast to.
            If None, the stored value is returned without casting.

    Returns:
        Parameter value retrieved from in_dict, or default_val if not provided.
    """

    if in_key not in in_dict:
        return default_val

    in_val = in_dict[in_key]
    if default_val is None:
        return in_val

    # bool("False") is True, so strings are checked explicitly
    if isinstance(default_val, bool) and isinstance(in_val, str):
        if in_val.strip().lower() in ["true", "1", "yes"]:
            return True
        if in_val.strip().lower() in ["false", "0", "no"]:
            return False
        raise ValueError("Could not interpret " + in_key + " = " + in_val + " as a boolean")

    return type(default_val)(in_val)


def parse_value(expr):
    """Parse text into a Python literal.

    Whitespace-separated sequences such as "[1.0 2.0 3.0]" are accepted as lists.

    Args:
        expr: String to be converted to a Python literal.

    Returns:
        Parsed value.
    """

    try:
        return ast.literal_eval(expr)
    except (ValueError, SyntaxError):
        return ast.literal_eval(re.sub(r"(?<=[^\[\(,\s])\s+(?=[^\]\),\s])", ",", expr.strip()))


def strip_comment(line):
    """Remove a "#" comment from line, keeping "#" characters inside quoted strings."""

    return re.sub(r"(\"[^\"]*\"|'[^']*')|#.*", lambda match: match.group(1) or "", line)


def parse_line(line):
    """Split a "key = value" line into the parameter name and its parsed value.

    Text after a "#" outside of quotes is a comment.

    Args:
        line: String of a single line from a text file.

    Returns:
        Parameter name and parsed value, or (None, None) for blank and comment-only lines.
    """

    line = strip_comment(line).strip()
    if not line:
        return None, None

    eq = line.find("=")
    if eq == -1:
        raise ValueError("Input line has no '=': " + line)

    key = line[:eq].strip()
    value = line[(eq + 1) :].strip()
    return key, parse_value(value)


def read_input_file(input_file):
    """Parse input parameters from a text input file.

    Args:
        input_file: Path to input file to be read.

    Returns:
        Dictionary of parameters read from input_file, with lists converted to NumPy arrays.
    """

    read_dict = {}
    with open(input_file) as f:
        for line_num, line in enumerate(f, start=1):
            try:
                key, val = parse_line(line)
            except (ValueError, SyntaxError) as err:
                raise ValueError("Could not parse line " + str(line_num) + " of " + input_file) from err

            if key is None:
                continue
            if isinstance(val, list):
                val = np.asarray(val)
            read_dict[key] = val

    return read_dict
