from textwrap import dedent

from archmap.text import (
	block_end,
	call_args,
	find_function_span,
	line_of,
	snake_case,
	split_lines,
	split_top_level,
)


def test_line_of_is_one_based():
	text = "a\nb\nc"
	assert line_of(text, 0) == 1
	assert line_of(text, text.index("c")) == 3


def test_brace_block_end():
	code = dedent(
		"""
		export class UserService {
		  find() {
			return 1;
		  }
		}
		const x = 1;
		"""
	).lstrip("\n")
	lines = split_lines(code)
	assert block_end(lines, 1, "typescript") == 5
	assert block_end(lines, 2, "typescript") == 4
	assert block_end(lines, 6, "typescript") == 6


def test_brace_block_end_ignores_braces_in_strings():
	java = dedent(
		"""
		@GetMapping("/ping/{id}")
		public String ping(@PathVariable String id) {
			return "}" + id; // closes with }
		}
		"""
	).lstrip("\n")
	assert block_end(split_lines(java), 1, "java") == 4

	csharp = dedent(
		"""
		[HttpGet("{id}")]
		public IActionResult Get(int id)
		{
			return Ok("http://example.com/{id}");
		}
		"""
	).lstrip("\n")
	assert block_end(split_lines(csharp), 1, "csharp") == 5

	rust = "fn name<'a>(s: &'a str) -> &'a str {\n    s\n}\n"
	assert block_end(split_lines(rust), 1, "rust") == 3


def test_indent_block_end_skips_decorators():
	code = dedent(
		"""
		@router.get("/items")
		def list_items(
			limit: int = 10,
		):
			return []

		x = 1
		"""
	).lstrip("\n")
	lines = split_lines(code)
	assert block_end(lines, 1, "python") == 5


def test_split_top_level_respects_nesting():
	assert split_top_level("a: Map<K, V>, b: (x, y) => z, c") == ["a: Map<K, V>", "b: (x, y) => z", "c"]


def test_call_args_ignores_brackets_in_strings():
	text = 'app.get("/a(b", handler)'
	assert call_args(text, text.index("(")) == '"/a(b", handler'


def test_find_function_span():
	code = dedent(
		"""
		const x = 1;

		export async function loadUser(id) {
		  return db.get(id);
		}
		"""
	).lstrip("\n")
	assert find_function_span(code, "loadUser", "typescript") == (3, 5)
	assert find_function_span(code, "missing", "typescript") is None


def test_snake_case():
	assert snake_case("UserService") == "user_service"
	assert snake_case("HTTPClient") == "http_client"
