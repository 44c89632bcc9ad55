import unittest
import dataclasses

from smartscript.errors import ParseError
from smartscript.lex import lex
from smartscript.tags import EchoTag, ForTag, EndTag, parse_tag, split_fields
from smartscript.tokens import (
    IntegerLiteral,
    DoubleLiteral,
    StringLiteral,
    Variable,
    FunctionRef,
    Operator,
    is_identifier,
    to_token,
)
from smartscript.nodes import DocumentNode, TextNode, EchoNode, ForLoopNode
from smartscript.parser import parse, parse_cached
from smartscript.printer import to_source, dump


class TestLex(unittest.TestCase):
    def lex_it(self, text: str) -> list[tuple[bool, str, int]]:
        return list(lex(text))

    def test_plain(self):
        self.assertEqual(self.lex_it('Hello World\n'), [(False, 'Hello World\n', 0)])
        self.assertEqual(self.lex_it(''), [])

    def test_tags(self):
        self.assertEqual(
            self.lex_it('ab[$= 1$]cd'),
            [(False, 'ab', 0), (True, '= 1', 2), (False, 'cd', 9)],
        )

    def test_back_to_back(self):
        self.assertEqual(
            self.lex_it('[$=1$][$=2$]'),
            [(True, '=1', 0), (True, '=2', 6)],
        )

    def test_spaces_in_delimiters(self):
        self.assertEqual(self.lex_it('[   $END$   ]x'), [(True, 'END', 0), (False, 'x', 13)])

    def test_escape(self):
        self.assertEqual(self.lex_it(r'a \[b]'), [(False, 'a [b]', 0)])
        # Only `\[` is special, the rest stays untouched.
        self.assertEqual(self.lex_it(r'\\ \t \n'), [(False, r'\\ \t \n', 0)])
        self.assertEqual(self.lex_it(r'\[$=1$]'), [(False, '[$=1$]', 0)])

    def test_escape_after_tag(self):
        self.assertEqual(
            self.lex_it(r'[$END$]\[x'),
            [(True, 'END', 0), (False, '[x', 7)],
        )

    def test_errors(self):
        cases = {
            '[x': 'tag must open',
            '[$$]': 'empty tag body',
            '[$=1$x': 'malformed tag close',
            '[$=1': 'unterminated tag',
            'abc[$': 'unterminated tag',
            'abc[': 'unterminated tag',
            '[$=1$': 'unterminated tag',
            'abc\\': 'unterminated escape',
        }
        for text, msg in cases.items():
            with self.subTest(text=text):
                with self.assertRaises(ParseError) as cm:
                    self.lex_it(text)
                self.assertIn(msg, str(cm.exception))


class TestTokens(unittest.TestCase):
    def test_numbers(self):
        self.assertEqual(to_token('42'), IntegerLiteral(42))
        self.assertEqual(to_token('-5'), IntegerLiteral(-5))
        self.assertEqual(to_token('+5'), IntegerLiteral(5))
        self.assertEqual(to_token('1.5e3'), DoubleLiteral(1500.0))
        self.assertEqual(to_token('.5'), DoubleLiteral(0.5))
        self.assertEqual(to_token('3.'), DoubleLiteral(3.0))

    def test_integer_range(self):
        self.assertEqual(to_token('9223372036854775807'), IntegerLiteral(2**63 - 1))
        self.assertEqual(
            to_token('9223372036854775808'), DoubleLiteral(9223372036854775808.0)
        )

    def test_operators(self):
        for op in '+-*/':
            self.assertEqual(to_token(op), Operator(op))

    def test_functions(self):
        self.assertEqual(to_token('@sin'), FunctionRef('sin'))
        self.assertEqual(to_token('@paramGet'), FunctionRef('paramGet'))
        for bad in ('@', '@1x', '@a-b'):
            with self.subTest(bad=bad), self.assertRaises(ParseError):
                to_token(bad)

    def test_strings(self):
        self.assertEqual(to_token('"a b"'), StringLiteral('a b'))
        self.assertEqual(to_token('""'), StringLiteral(''))
        self.assertEqual(to_token(r'"x\ny"'), StringLiteral('x\ny'))
        self.assertEqual(to_token(r'"\"q\" \t\r"'), StringLiteral('"q" \t\r'))
        self.assertEqual(to_token(r'"a\\b"'), StringLiteral('a\\b'))

    def test_variables(self):
        self.assertEqual(to_token('i'), Variable('i'))
        self.assertEqual(to_token('a_1'), Variable('a_1'))
        self.assertEqual(to_token('čaša'), Variable('čaša'))

    def test_identifier(self):
        self.assertTrue(is_identifier('x'))
        self.assertTrue(is_identifier('x_9_y'))
        self.assertFalse(is_identifier(''))
        self.assertFalse(is_identifier('_x'))
        self.assertFalse(is_identifier('9x'))
        # Every character is checked, not just the first one.
        self.assertFalse(is_identifier('ab-c'))
        self.assertFalse(is_identifier('a.b'))

    def test_invalid(self):
        for bad in ('a-b', '_a', '"abc', '#', '1x'):
            with self.subTest(bad=bad):
                with self.assertRaises(ParseError) as cm:
                    to_token(bad)
                self.assertIn('invalid', str(cm.exception))


class TestTags(unittest.TestCase):
    def test_split_fields(self):
        self.assertEqual(split_fields(' 1  "a b"\tx\n@f '), ['1', '"a b"', 'x', '@f'])
        self.assertEqual(split_fields(r'"a\"b c" d'), [r'"a\"b c"', 'd'])
        self.assertEqual(split_fields(''), [])

    def test_unicode_whitespace(self):
        self.assertEqual(split_fields('1\x0b2\xa03\u2003"a b"'), ['1', '2', '3', '"a b"'])
        self.assertEqual(
            parse_tag('=\xa0x\x0b"a\xa0b"'),
            EchoTag((Variable('x'), StringLiteral('a\xa0b'))),
        )

    def test_echo(self):
        tag = parse_tag('= 1 2.5 "s t" x @f +')
        self.assertEqual(
            tag,
            EchoTag(
                (
                    IntegerLiteral(1),
                    DoubleLiteral(2.5),
                    StringLiteral('s t'),
                    Variable('x'),
                    FunctionRef('f'),
                    Operator('+'),
                )
            ),
        )
        self.assertEqual(parse_tag('=i'), EchoTag((Variable('i'),)))
        self.assertEqual(parse_tag(r'= "a\"b c"'), EchoTag((StringLiteral('a"b c'),)))

    def test_end(self):
        for body in ('END', 'end', ' End '):
            self.assertEqual(parse_tag(body), EndTag())

    def test_for(self):
        self.assertEqual(
            parse_tag('FOR i 1 10'),
            ForTag(Variable('i'), IntegerLiteral(1), IntegerLiteral(10)),
        )
        self.assertEqual(
            parse_tag(' for  sco_re  -1   10.5  2 '),
            ForTag(
                Variable('sco_re'), IntegerLiteral(-1), DoubleLiteral(10.5), IntegerLiteral(2)
            ),
        )

    def test_errors(self):
        cases = {
            'FOR i 1': '3 or 4',
            'FOR i 1 2 3 4': '3 or 4',
            'FOR': '3 or 4',
            'FOR 1 1 10': 'variable',
            'FOR "i" 1 10': 'variable',
            'IF x': 'unrecognized',
            'ENDFOR': 'unrecognized',
            'FORi 1 2': 'unrecognized',
            '= "a b': 'unterminated string',
            '= a"b': 'unterminated string',
            '=': 'empty echo',
            '= 1 $x': 'invalid token',
            '   ': 'empty tag body',
        }
        for body, msg in cases.items():
            with self.subTest(body=body):
                with self.assertRaises(ParseError) as cm:
                    parse_tag(body)
                self.assertIn(msg, str(cm.exception))


class TestParse(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(parse(''), DocumentNode())

    def test_tree(self):
        doc = parse('a[$FOR i 1 3$]b[$= i$][$END$]c')
        self.assertEqual(
            doc,
            DocumentNode(
                (
                    TextNode('a'),
                    ForLoopNode(
                        Variable('i'),
                        IntegerLiteral(1),
                        IntegerLiteral(3),
                        None,
                        (TextNode('b'), EchoNode((Variable('i'),))),
                    ),
                    TextNode('c'),
                )
            ),
        )

    def test_nested(self):
        doc = parse('[$FOR i 1 2$][$FOR j 1 2$][$= i j$][$END$][$END$][$= 0$]')
        self.assertEqual(len(doc.children), 2)
        outer = doc.children[0]
        assert isinstance(outer, ForLoopNode)
        inner = outer.children[0]
        assert isinstance(inner, ForLoopNode)
        self.assertEqual(inner.variable, Variable('j'))
        self.assertEqual(inner.children, (EchoNode((Variable('i'), Variable('j'))),))
        self.assertIsInstance(doc.children[1], EchoNode)

    def test_unmatched_end(self):
        with self.assertRaises(ParseError) as cm:
            parse('x[$FOR i 1 2$][$END$][$END$]')
        self.assertIn('unmatched END', str(cm.exception))
        self.assertEqual(cm.exception.pos, 21)

    def test_unclosed_for(self):
        with self.assertRaises(ParseError) as cm:
            parse('a\nb[$FOR i 1 2$]x[$FOR j 1 2$][$END$]')
        e = cm.exception
        self.assertIn('unclosed FOR i', str(e))
        self.assertEqual((e.line, e.column), (2, 2))

    def test_tag_error_position(self):
        with self.assertRaises(ParseError) as cm:
            parse('line one\n  [$= a-b$]')
        e = cm.exception
        self.assertIn('invalid token', str(e))
        self.assertEqual((e.line, e.column), (2, 3))
        self.assertIsInstance(e.__cause__, ParseError)

    def test_no_partial_tree(self):
        with self.assertRaises(ParseError):
            parse('text [$= 1$] more [$FOR 1 2 3$][$END$]')

    def test_cached(self):
        text = '[$FOR i 1 2$][$= i$][$END$]'
        self.assertIs(parse_cached(text), parse_cached(text))
        self.assertEqual(parse_cached(text), parse(text))

    def test_frozen(self):
        doc = parse_cached('a[$FOR i 1 2$][$= i$][$END$]')
        with self.assertRaises(dataclasses.FrozenInstanceError):
            doc.children = ()
        with self.assertRaises(AttributeError):
            doc.children.append(TextNode('b'))
        loop = doc.children[1]
        with self.assertRaises(dataclasses.FrozenInstanceError):
            loop.step = IntegerLiteral(2)
        self.assertEqual(dump(parse_cached('a[$FOR i 1 2$][$= i$][$END$]')), dump(doc))
        self.assertIs(parse_cached('a[$FOR i 1 2$][$= i$][$END$]'), doc)


class TestPrinter(unittest.TestCase):
    def test_source(self):
        doc = parse(r'Hi \[there] [$FOR i 1 10 2$][$= i "a b" @sin *$][$END$]!')
        self.assertEqual(
            to_source(doc),
            r'Hi \[there] [$FOR i 1 10 2 $][$= i "a b" @sin * $][$END$]!',
        )

    def test_round_trip(self):
        text = (
            'A \\[doc\\]\n'
            '[$ FOR i -1 10.5 $]\n'
            '  [$= i " \\"q\\" " 2.5 @decfmt "0.0" + $]\n'
            '  [$FOR j 1 2$][$=j$][$END$]\n'
            '[$END$]\n'
            '[$= "tab\\there" 1E3 $]'
        )
        doc = parse(text)
        self.assertEqual(parse(to_source(doc)), doc)

    def test_dump(self):
        doc = parse('a[$FOR i 1 2$][$= i 1 +$][$END$]')
        self.assertEqual(
            dump(doc),
            "Document[2]\n  Text('a')\n  For(i, 1, 2)[1]\n    Echo(i 1 +)",
        )


if __name__ == '__main__':
    unittest.main()
