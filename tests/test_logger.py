import io
import json
import unittest
from contextlib import redirect_stderr

from scopekit import ChainScope, WrapperScope, CloseError, ConsoleLogger, get_logger, set_logger, reset_logger, use_logger
from scopekit.logger import debug_event, safe_repr


class Failing:
    def __init__(self, name: str): self.name = name
    def close(self): raise OSError(self.name)
    def __repr__(self): return f"Failing({self.name})"


class TestConsoleLogger(unittest.TestCase):
    def test_json_output_with_bound_fields(self):
        buf = io.StringIO()
        logger = ConsoleLogger(level="DEBUG", json_output=True).bind(request="r1")
        with redirect_stderr(buf):
            logger.info("hello", n=1)
        rec = json.loads(buf.getvalue().strip())
        self.assertEqual(rec["level"], "INFO")
        self.assertEqual(rec["msg"], "hello")
        self.assertEqual(rec["fields"], {"request": "r1", "n": 1})

    def test_level_filtering(self):
        buf = io.StringIO()
        logger = ConsoleLogger(level="WARN")
        with redirect_stderr(buf):
            logger.info("quiet")
            logger.error("loud")
        lines = buf.getvalue().strip().splitlines()
        self.assertEqual(len(lines), 1)
        self.assertIn("scopekit ERROR: loud", lines[0])
        logger.set_level("debug")
        self.assertEqual(logger.level_name, "DEBUG")

    def test_use_logger_restores_previous(self):
        before = get_logger()
        mine = ConsoleLogger(name="mine")
        with use_logger(mine):
            self.assertIs(get_logger(), mine)
        self.assertIs(get_logger(), before)
        token = set_logger(mine)
        self.assertIs(get_logger(), mine)
        reset_logger(token)
        self.assertIs(get_logger(), before)


class TestScopeLogging(unittest.TestCase):
    def test_lifecycle_logged_at_debug(self):
        buf = io.StringIO()
        with redirect_stderr(buf), use_logger(ConsoleLogger(level="DEBUG", json_output=True)):
            with ChainScope() as s:
                h = s.hook(WrapperScope())
                s.release(h)
        msgs = [json.loads(l)["msg"] for l in buf.getvalue().strip().splitlines()]
        self.assertEqual(msgs, ["hook", "release"])

    def test_suppressed_failures_logged_as_warnings(self):
        buf = io.StringIO()
        w = WrapperScope()
        w.add(Failing("a")); w.add(Failing("b"))
        with redirect_stderr(buf), use_logger(ConsoleLogger(level="WARN", json_output=True)):
            with self.assertRaises(CloseError):
                w.close()
        (rec,) = [json.loads(l) for l in buf.getvalue().strip().splitlines()]
        self.assertEqual(rec["msg"], "suppressed release failure")
        self.assertEqual(rec["fields"]["handle"], "Failing(a)")

    def test_silent_by_default(self):
        buf = io.StringIO()
        with redirect_stderr(buf):
            with WrapperScope() as w:
                w.add(WrapperScope())
        self.assertEqual(buf.getvalue(), "")


class TestSafeFormatting(unittest.TestCase):
    def test_safe_repr_falls_back(self):
        class Bad:
            def __repr__(self): raise RuntimeError("repr broken")

        self.assertIn("Bad object at", safe_repr(Bad()))
        self.assertEqual(safe_repr([1]), "[1]")

    def test_debug_event_skips_formatting_below_debug(self):
        calls = []

        class Counted:
            def __repr__(self):
                calls.append(1); return "Counted()"

        buf = io.StringIO()
        with redirect_stderr(buf):
            debug_event("add", "WrapperScope", Counted())
            with use_logger(ConsoleLogger(level="DEBUG")):
                debug_event("add", "WrapperScope", Counted())
        self.assertEqual(len(calls), 1)
        self.assertIn("handle=Counted()", buf.getvalue())
