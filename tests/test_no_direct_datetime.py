import importlib.util
import tempfile
import unittest
from pathlib import Path


SCRIPT = Path(__file__).resolve().parents[1] / 'scripts' / 'check_no_direct_datetime.py'


def _load_checker():
    spec = importlib.util.spec_from_file_location('check_no_direct_datetime', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class NoDirectClockReadsTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.checker = _load_checker()

    def test_package_reads_clock_only_through_time_provider(self):
        violations = self.checker.find_violations()
        listing = '\n'.join(f'{path}:{line}: {call}' for path, line, call in violations)
        self.assertEqual(violations, [], f'Direct clock reads found:\n{listing}')

    def test_checker_flags_direct_calls(self):
        with tempfile.TemporaryDirectory() as tmp:
            sample = Path(tmp) / 'sample.py'
            sample.write_text(
                'import datetime\n'
                'from datetime import date\n'
                'a = datetime.datetime.now()\n'
                'b = date.today()\n'
                'c = date(2026, 1, 1)\n',
                encoding='utf-8',
            )
            violations = self.checker.find_violations(Path(tmp))
        self.assertEqual([(line, call) for _, line, call in violations], [(3, 'datetime.now()'), (4, 'date.today()')])


if __name__ == '__main__':
    unittest.main()
