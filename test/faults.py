"""
Faults module behavioral tests (trigger contract, options, rendering).

Conventions
- Test method names follow CamelCase per project convention.
- Rendering goes to a throwaway rich Console so nothing reaches the terminal.
"""

import contextlib
import copy
import io
import unittest
import warnings
from unittest import TestCase

from rich.console import Console

from argosy.faults import (
    FaultCode,
    CommandException,
    UnknownOptionError,
    ValueConversionError,
    EmptyOptionValueWarning,
    CommandExit,
    trigger,
    getdoc,
)


def render(renderable):
    buffer = io.StringIO()
    Console(file=buffer, width=100, color_system=None).print(renderable)
    return buffer.getvalue()


class TestTrigger(TestCase):
    """trigger() contract."""

    def testErrorsAreRaisedOutsideShellMode(self):
        with self.assertRaises(UnknownOptionError) as context:
            trigger(UnknownOptionError("unknown option '--x'", option="--x"), fancy=True)
        self.assertEqual(context.exception.option, "--x")
        self.assertTrue(context.exception.fancy)

    def testErrorsExitInShellMode(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr), self.assertRaises(SystemExit) as context:
            trigger(UnknownOptionError("unknown option '--x'", code=FaultCode.UNKNOWN_OPTION), shell=True)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("11111", stderr.getvalue())

    def testWarningsGoThroughTheWarningsModule(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            trigger(EmptyOptionValueWarning("empty value for '--name'"))
        self.assertEqual(len(caught), 1)
        self.assertIsInstance(caught[0].message, EmptyOptionValueWarning)

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


class TestOptions(TestCase):
    """Fault options and copies."""

    def testContextIsReadableAsAttributes(self):
        fault = ValueConversionError("bad", member="port", text="abc")
        self.assertEqual(fault.member, "port")
        self.assertEqual(fault.text, "abc")
        with self.assertRaises(AttributeError):
            fault.missing

    def testReplaceMergesOptions(self):
        fault = ValueConversionError("bad", member="port")
        copied = copy.replace(fault, shell=False, member="ratio")
        self.assertEqual(copied.member, "ratio")
        self.assertEqual(fault.member, "port")
        self.assertEqual(str(copied), "bad")
        self.assertIsInstance(copied, ValueError)

    def testOptionsAreReadOnly(self):
        fault = CommandException("bad", member="port")
        with self.assertRaises(TypeError):
            fault.options["member"] = "other"

    def testCommandExitIsFinal(self):
        with self.assertRaises(TypeError):
            class Derived(CommandExit):
                pass

    def testCommandExitReplaceKeepsExceptions(self):
        group = CommandExit([ValueConversionError("a"), ValueConversionError("b")])
        copied = copy.replace(group, fancy=True)
        self.assertEqual(len(copied.exceptions), 2)
        self.assertTrue(copied.options["fancy"])


class TestCodes(TestCase):
    """Fault codes and documentation lookup."""

    def testNormalizeDefaultsToTheNumber(self):
        self.assertEqual(FaultCode.AMBIGUOUS_NAME.normalize(), "21114")

    def testGetdocRequiresACode(self):
        with self.assertRaises(TypeError):
            getdoc(11111)
        self.assertIsNone(getdoc(FaultCode.UNKNOWN_OPTION))


class TestRendering(TestCase):
    """Rich rendering."""

    def testPlainRendering(self):
        output = render(UnknownOptionError(
            "unknown option '--prot'",
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint="did you mean 'port'?",
            colorful=False,
        ))
        self.assertIn("Unknown Option", output)
        self.assertIn("11111", output)
        self.assertIn("unknown option '--prot'", output)
        self.assertIn("did you mean 'port'?", output)

    def testFancyGroupRendering(self):
        group = CommandExit(
            [ValueConversionError("invalid value 'x'"), ValueConversionError("invalid value 'y'")],
            fancy=True,
        )
        output = render(group)
        self.assertIn("Bad Exit", output)
        self.assertIn("invalid value 'x'", output)
        self.assertIn("invalid value 'y'", output)


if __name__ == "__main__":
    unittest.main()
