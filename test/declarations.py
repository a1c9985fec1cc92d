"""
Declarations module behavioral tests (tags, descriptor access, descriptor table).

Scope
- Validate tag construction and metadata sanitization (Option, Argument, HelpOption).
- Validate the descriptor behavior of tags placed as class-level values.
- Validate @helper in its bare and parameterized forms.
- Validate members(): inheritance order, Annotated metadata, ClassVar skipping.

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for any parameter; omit instead.
"""

import unittest
from typing import Annotated, ClassVar
from unittest import TestCase

from argosy import Option, Argument, HelpOption, Arity, helper, members
from argosy.utils import Unset


class TestOption(TestCase):
    """Behavioral tests for Option specifications."""

    def testOptionDefaultsAreUnset(self):
        o = Option()
        self.assertIs(o.template, Unset)
        self.assertIs(o.descr, Unset)
        self.assertIs(o.arity, Unset)
        self.assertIs(o.default, Unset)
        self.assertFalse(o.required)
        self.assertFalse(o.hidden)

    def testOptionTemplateIsTrimmed(self):
        o = Option("  -p|--port  ")
        self.assertEqual(o.template, "-p|--port")

    def testOptionEmptyTemplateRejected(self):
        with self.assertRaises(ValueError):
            Option("   ")

    def testOptionNonStringTemplateRejected(self):
        with self.assertRaises(TypeError):
            Option(42)

    def testOptionArityAcceptsItsTextualValue(self):
        self.assertIs(Option(arity="single-value").arity, Arity.SINGLE_VALUE)
        self.assertIs(Option(arity=Arity.MULTIPLE_VALUE).arity, Arity.MULTIPLE_VALUE)

    def testOptionUnknownArityRejected(self):
        with self.assertRaises(ValueError):
            Option(arity="many")
        with self.assertRaises(TypeError):
            Option(arity=3)

    def testOptionEmptyValueNameRejected(self):
        with self.assertRaises(ValueError):
            Option(value_name=" ")

    def testOptionReprNamesItsType(self):
        self.assertTrue(repr(Option("--port")).startswith("option("))


class TestArgument(TestCase):
    """Behavioral tests for Argument specifications."""

    def testArgumentOrderMustBeNonNegative(self):
        with self.assertRaises(ValueError):
            Argument(-1)

    def testArgumentOrderMustBeAnInteger(self):
        with self.assertRaises(TypeError):
            Argument("0")
        with self.assertRaises(TypeError):
            Argument(True)

    def testArgumentMultipleMustBeBoolean(self):
        with self.assertRaises(TypeError):
            Argument(0, multiple="yes")

    def testArgumentKeepsItsMetadata(self):
        a = Argument(2, "FILE", "file to read", required=True)
        self.assertEqual(a.order, 2)
        self.assertEqual(a.name, "FILE")
        self.assertEqual(a.descr, "file to read")
        self.assertTrue(a.required)
        self.assertIs(a.multiple, Unset)


class TestHelpOption(TestCase):
    """Behavioral tests for HelpOption and @helper."""

    def testHelpOptionDefaults(self):
        h = HelpOption()
        self.assertEqual(h.template, "-?|-h|--help")
        self.assertEqual(h.descr, "Show help information")

    def testBareHelperDecorator(self):
        @helper
        class Tool:
            pass

        h, = Tool.__helpers__
        self.assertEqual(h.template, "-?|-h|--help")

    def testParameterizedHelperDecorator(self):
        @helper("--usage", "show usage")
        class Tool:
            pass

        h, = Tool.__helpers__
        self.assertEqual(h.template, "--usage")
        self.assertEqual(h.descr, "show usage")

    def testHelperRejectsNonClasses(self):
        with self.assertRaises(TypeError):
            helper()(lambda: None)


class TestDescriptor(TestCase):
    """Tags placed as class-level values read as values on instances."""

    def testClassAccessReturnsTheTag(self):
        tag = Option(default=8080)

        class Serve:
            port: int = tag

        self.assertIs(Serve.port, tag)

    def testInstanceAccessReturnsTheDefault(self):
        class Serve:
            port: int = Option(default=8080)
            host: str = Option()

        serve = Serve()
        self.assertEqual(serve.port, 8080)
        self.assertIsNone(serve.host)

    def testInstanceAccessReturnsTheAssignedValue(self):
        class Serve:
            port: int = Option(default=8080)

        serve = Serve()
        serve.port = 9090
        self.assertEqual(serve.port, 9090)
        self.assertEqual(Serve().port, 8080)

    def testTagCannotDescribeTwoMembers(self):
        tag = Option()

        class First:
            port: int = tag

        with self.assertRaises(TypeError):
            class Second:
                port: int = tag


class TestMembers(TestCase):
    """Behavioral tests for the descriptor table reader."""

    def testMembersFollowDeclarationOrder(self):
        class Tool:
            first: str = Option()
            second: int = Option()
            third: list[str] = Argument()

        self.assertEqual([m.name for m in members(Tool)], ["first", "second", "third"])

    def testBaseMembersComeFirst(self):
        class Base:
            alpha: str = Option()
            beta: str = Option()

        class Derived(Base):
            gamma: str = Option()
            alpha: int = Option()

        table = members(Derived)
        self.assertEqual([m.name for m in table], ["alpha", "beta", "gamma"])
        self.assertIs(table[0].owner, Derived)
        self.assertIs(table[0].type, int)
        self.assertIs(table[1].owner, Base)

    def testAnnotatedMetadataCarriesTags(self):
        tag = Option("-p|--port")

        class Serve:
            port: Annotated[int, tag, "unrelated"] = 8080

        member, = members(Serve)
        self.assertIs(member.type, int)
        self.assertEqual(member.tags, (tag,))
        self.assertEqual(member.default, 8080)

    def testTagDefaultIsTheMemberDefault(self):
        class Serve:
            port: int = Option(default=8080)
            host: str = Option()

        port, host = members(Serve)
        self.assertEqual(port.default, 8080)
        self.assertIs(host.default, Unset)

    def testClassVarIsSkipped(self):
        class Tool:
            registry: ClassVar[dict] = {}
            name: str = Option()

        self.assertEqual([m.name for m in members(Tool)], ["name"])

    def testUnannotatedTagIsTypedStr(self):
        class Tool:
            name = Option()

        member, = members(Tool)
        self.assertIs(member.type, str)

    def testPlainAnnotationsAreListedWithoutTags(self):
        class Tool:
            cache: dict
            name: str = Option()

        cache, name = members(Tool)
        self.assertEqual(cache.tags, ())
        self.assertEqual(name.qualname.rsplit(".", 1)[-1], "name")

    def testMembersRejectsInstances(self):
        with self.assertRaises(TypeError):
            members(object())


if __name__ == "__main__":
    unittest.main()
