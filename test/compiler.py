"""
Compiler module behavioral tests (resolution, validation, caching, immutability).

Scope
- Validate per-member resolution: names, arity, multiplicity, defaults.
- Validate every declaration fault and that it names the members involved.
- Validate the process-wide model cache and model immutability.

Conventions
- Test method names follow CamelCase per project convention.
- Declared classes are defined inside each test so the model cache never leaks
  between tests.
"""

import gc
import threading
import unittest
from typing import Annotated
from unittest import TestCase, mock

from argosy import (
    Option,
    Argument,
    HelpOption,
    Arity,
    ValueParserRegistry,
    helper,
    compile_model,
    purge,
)
from argosy.faults import (
    DeclarationError,
    ConflictingRolesError,
    InvalidNoValueTypeError,
    UnresolvedArityError,
    MultiValueTypeMismatchError,
    InvalidTemplateError,
    DuplicateOrderError,
    MultiValueNotLastError,
    DuplicateHelpTriggerError,
    AmbiguousNameError,
)
from argosy import compiler
from argosy.parsers import default_parsers
from argosy.utils import Unset


class TestResolution(TestCase):
    """Per-member resolution."""

    def testServeModel(self):
        class Serve:
            port: int = Option("--port")
            args: list[str] = Argument(0, required=True)

        model = compile_model(Serve)
        port, = model.options
        args, = model.arguments
        self.assertEqual(port.long, "port")
        self.assertIs(port.short, Unset)
        self.assertIs(port.arity, Arity.SINGLE_VALUE)
        self.assertIs(port.element, int)
        self.assertTrue(args.multiple)
        self.assertIs(args.container, list)
        self.assertIs(args.element, str)
        self.assertTrue(args.required)
        self.assertIsNone(model.helper)

    def testNamesDerivedFromTheMember(self):
        class Tool:
            max_retry_count: int = Option()

        option, = compile_model(Tool).options
        self.assertEqual(option.long, "max-retry-count")
        self.assertEqual(option.short, "m")
        self.assertEqual(option.value_name, "MAX_RETRY_COUNT")
        self.assertEqual(option.descr, "max_retry_count")
        self.assertEqual(option.template, "-m|--max-retry-count <MAX_RETRY_COUNT>")

    def testNamesFromTheTemplate(self):
        class Tool:
            example: str = Option("-?|-x|--ex <THING>", "an example")

        option, = compile_model(Tool).options
        self.assertEqual((option.short, option.symbol, option.long), ("x", "?", "ex"))
        self.assertEqual(option.value_name, "THING")
        self.assertEqual(option.descr, "an example")
        self.assertEqual(option.names, ("-x", "-?", "--ex"))

    def testExplicitValueNameWins(self):
        class Tool:
            output: str = Option("-o <PATH>", value_name="FILE")

        option, = compile_model(Tool).options
        self.assertEqual(option.value_name, "FILE")

    def testBooleanIsAlwaysNoValue(self):
        class Tool:
            debug: bool = Option(arity="single-value")
            quiet: bool = Option(arity=Arity.MULTIPLE_VALUE)

        for option in compile_model(Tool).options:
            self.assertIs(option.arity, Arity.NO_VALUE)

    def testCountedFlags(self):
        class Tool:
            verbose: list[bool] = Option("-v")

        option, = compile_model(Tool).options
        self.assertIs(option.arity, Arity.NO_VALUE)
        self.assertIs(option.container, list)

    def testSwitchOption(self):
        class Tool:
            color: tuple[bool, str] = Option()

        option, = compile_model(Tool).options
        self.assertIs(option.arity, Arity.SINGLE_OR_NO_VALUE)
        self.assertIs(option.element, str)

    def testRegisteredTypeResolvesWithItsRegistry(self):
        class Point:
            pass

        class Tool:
            origin: Point = Option()

        parsers = ValueParserRegistry()
        parsers.register(Point, lambda text: Point())
        option, = compile_model(Tool, parsers).options
        self.assertIs(option.arity, Arity.SINGLE_VALUE)

    def testImplicitArgumentOrders(self):
        class Tool:
            first: str = Argument()
            second: str = Argument(5)
            third: str = Argument()

        model = compile_model(Tool)
        self.assertEqual([(a.member, a.order) for a in model.arguments], [("first", 0), ("second", 5), ("third", 6)])

    def testArgumentsAreSortedByOrder(self):
        class Tool:
            target: str = Argument(1)
            source: str = Argument(0)

        self.assertEqual([a.member for a in compile_model(Tool).arguments], ["source", "target"])

    def testInheritedMembersComeFirst(self):
        class Base:
            alpha: str = Option()

        class Derived(Base):
            beta: str = Option()

        self.assertEqual([o.member for o in compile_model(Derived).options], ["alpha", "beta"])

    def testAnnotatedDeclarations(self):
        class Serve:
            port: Annotated[int, Option("-p|--port")] = 8080

        option, = compile_model(Serve).options
        self.assertEqual(option.default, 8080)
        self.assertIs(option.type, int)

    def testUntaggedMembersAreIgnored(self):
        class Tool:
            cache: dict
            name: str = Option()

        self.assertEqual([o.member for o in compile_model(Tool).options], ["name"])

    def testDefaultHelpTrigger(self):
        @helper
        class Tool:
            name: str = Option()

        model = compile_model(Tool)
        self.assertTrue(model.helper.helper)
        self.assertEqual((model.helper.short, model.helper.symbol, model.helper.long), ("h", "?", "help"))
        self.assertEqual(model.helper.descr, "Show help information")
        self.assertIs(model.find_short("?"), model.helper)
        self.assertIs(model.find_long("HELP"), model.helper)

    def testMemberHelpTrigger(self):
        class Tool:
            usage: bool = HelpOption("--usage")

        model = compile_model(Tool)
        self.assertEqual(model.helper.member, "usage")
        self.assertEqual(model.options, ())


class TestFaults(TestCase):
    """Declaration faults."""

    def testConflictingOptionAndArgument(self):
        class Tool:
            name: Annotated[str, Option(), Argument()]

        with self.assertRaises(ConflictingRolesError) as context:
            compile_model(Tool)
        self.assertIn("Tool.name", str(context.exception))

    def testConflictingOptionAndHelp(self):
        class Tool:
            help: Annotated[bool, HelpOption()] = Option()

        with self.assertRaises(ConflictingRolesError):
            compile_model(Tool)

    def testInvalidNoValueType(self):
        class Tool:
            count: int = Option(arity=Arity.NO_VALUE)

        with self.assertRaises(InvalidNoValueTypeError) as context:
            compile_model(Tool)
        self.assertEqual(context.exception.member, "TestFaults.testInvalidNoValueType.<locals>.Tool.count")

    def testMultipleValueOptionOnScalar(self):
        class Tool:
            name: str = Option(arity=Arity.MULTIPLE_VALUE)

        with self.assertRaises(MultiValueTypeMismatchError):
            compile_model(Tool)

    def testMultipleValueArgumentOnScalar(self):
        class Tool:
            name: str = Argument(0, multiple=True)

        with self.assertRaises(MultiValueTypeMismatchError):
            compile_model(Tool)

    def testUnresolvedArityNamesTheMember(self):
        class Tool:
            thing: object = Option()

        with self.assertRaises(UnresolvedArityError) as context:
            compile_model(Tool)
        self.assertTrue(context.exception.member.endswith("Tool.thing"))
        self.assertIs(context.exception.type, object)

    def testUnresolvedArgumentElement(self):
        class Tool:
            things: list[object] = Argument()

        with self.assertRaises(UnresolvedArityError):
            compile_model(Tool)

    def testInvalidTemplate(self):
        class Tool:
            port: int = Option("port")

        with self.assertRaises(InvalidTemplateError) as context:
            compile_model(Tool)
        self.assertIn("Tool.port", str(context.exception))

    def testTemplateWithoutNames(self):
        class Tool:
            port: int = Option("<PORT>")

        with self.assertRaises(InvalidTemplateError):
            compile_model(Tool)

    def testDuplicateOrder(self):
        class Tool:
            source: str = Argument(0)
            target: str = Argument(0)

        with self.assertRaises(DuplicateOrderError) as context:
            compile_model(Tool)
        first, second = context.exception.members
        self.assertTrue(first.endswith("Tool.source"))
        self.assertTrue(second.endswith("Tool.target"))

    def testMultiValueNotLast(self):
        class Tool:
            files: list[str] = Argument(0)
            target: str = Argument(1)

        with self.assertRaises(MultiValueNotLastError):
            compile_model(Tool)

    def testDuplicateHelpTrigger(self):
        @helper
        class Tool:
            usage: bool = HelpOption("--usage")

        with self.assertRaises(DuplicateHelpTriggerError):
            compile_model(Tool)

    def testAmbiguousLongName(self):
        class Tool:
            name: str = Option("--name")
            alias: str = Option("-a|--name")

        with self.assertRaises(AmbiguousNameError) as context:
            compile_model(Tool)
        first, second = context.exception.members
        self.assertTrue(first.endswith("Tool.name"))
        self.assertTrue(second.endswith("Tool.alias"))

    def testAmbiguousLongNameIgnoresCase(self):
        class Tool:
            name: str = Option("--name")
            label: str = Option("--NAME")

        with self.assertRaises(AmbiguousNameError):
            compile_model(Tool)

    def testAmbiguousDerivedShortName(self):
        class Tool:
            verbose: bool = Option()
            version: bool = Option()

        with self.assertRaises(AmbiguousNameError) as context:
            compile_model(Tool)
        self.assertEqual(context.exception.name, "-v")

    def testAmbiguousWithTheHelpTrigger(self):
        @helper
        class Tool:
            host: str = Option()

        with self.assertRaises(AmbiguousNameError):
            compile_model(Tool)

    def testDeclarationErrorsAreTypeErrors(self):
        class Tool:
            source: str = Argument(0)
            target: str = Argument(0)

        with self.assertRaises(TypeError):
            compile_model(Tool)
        self.assertTrue(issubclass(AmbiguousNameError, DeclarationError))

    def testFailuresAreNotCached(self):
        class Tool:
            thing: object = Option()

        for _ in range(2):
            with self.assertRaises(UnresolvedArityError):
                compile_model(Tool)


class TestCache(TestCase):
    """Process-wide model cache."""

    def testSameModelForTheSameClass(self):
        class Tool:
            name: str = Option()

        self.assertIs(compile_model(Tool), compile_model(Tool))

    def testRegistryIsPartOfTheKey(self):
        class Tool:
            name: str = Option()

        self.assertIsNot(compile_model(Tool), compile_model(Tool, ValueParserRegistry()))

    def testPurge(self):
        class Tool:
            name: str = Option()

        model = compile_model(Tool)
        purge()
        self.assertIsNot(compile_model(Tool), model)

    def testLosingCompilationIsDiscarded(self):
        class Tool:
            name: str = Option()

        rival = compiler._compile(Tool, default_parsers)
        compile = compiler._compile

        def racing(cls, parsers):
            model = compile(cls, parsers)
            compiler._publish(cls, parsers, rival)
            return model

        with mock.patch.object(compiler, "_compile", racing):
            self.assertIs(compile_model(Tool), rival)
        self.assertIs(compile_model(Tool), rival)

    def testConcurrentCallersShareOneModel(self):
        class Tool:
            name: str = Option()
            files: list[str] = Argument()

        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(compile_model(Tool))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(results), 8)
        for model in results:
            self.assertIs(model, results[0])

    def testThrowawayRegistriesAreReleased(self):
        class Tool:
            name: str = Option()

        parsers = ValueParserRegistry()
        compile_model(Tool, parsers)
        entries = compiler._cache[Tool]
        self.assertEqual(len(entries), 1)
        del parsers
        gc.collect()
        self.assertEqual(len(entries), 0)

    def testRejectsInstances(self):
        with self.assertRaises(TypeError):
            compile_model(object())


class TestImmutability(TestCase):
    """Compiled models are read-only."""

    def testModelIsSealed(self):
        class Tool:
            name: str = Option()
            files: list[str] = Argument()

        model = compile_model(Tool)
        with self.assertRaises(AttributeError):
            model.helper = None
        with self.assertRaises(AttributeError):
            model.options[0].long = "other"
        with self.assertRaises(AttributeError):
            del model.arguments[0].order
        self.assertIsInstance(model.options, tuple)

    def testCompiledDefaultsAreFrozen(self):
        class Tool:
            tags: list[str] = Option(default=["a", "b"])

        option, = compile_model(Tool).options
        self.assertEqual(option.default, ("a", "b"))


if __name__ == "__main__":
    unittest.main()
