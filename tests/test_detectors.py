from textwrap import dedent

from archmap.detectors import detect_file, models, resolve_precedence, services, transforms, transports
from archmap.detectors.payload import extract_payload_types, normalize_types
from archmap.model import CandidateComponent


def _by_name(candidates):
	return {c.name: c for c in candidates}


def test_ts_interface_fields():
	code = dedent(
		"""
		export interface User { id; name }

		export interface Post {
		  id: number;
		  title: string;
		  author?: User;
		  publish(): void;
		}
		"""
	)
	found = _by_name(models.detect("src/types.ts", "typescript", code))
	assert found["User"].member_fields == ["id", "name"]
	assert found["Post"].member_fields == ["id", "title", "author"]
	assert all(c.kind == "model" for c in found.values())


def test_python_dataclass_and_pydantic_fields():
	code = dedent(
		'''
		from dataclasses import dataclass
		from pydantic import BaseModel


		@dataclass
		class Order:
			"""An order."""
			id: int
			total: float = 0.0

			def total_with_tax(self) -> float:
				return self.total


		class UserCreate(BaseModel):
			name: str
			email: str
		'''
	)
	found = _by_name(models.detect("app/models.py", "python", code))
	assert found["Order"].member_fields == ["id", "total"]
	# Anchored on the class line, not the decorator.
	assert found["Order"].line_start == code.split("\n").index("class Order:") + 1
	assert found["UserCreate"].member_fields == ["name", "email"]


def test_rust_go_proto_models():
	rust = "pub struct Account {\n    pub id: u64,\n    owner: String,\n}\n"
	go = "type Item struct {\n\tID   string\n\tName string\n}\n"
	proto = 'syntax = "proto3";\n\nmessage User {\n  string id = 1;\n  string name = 2;\n}\n'
	assert models.detect("src/account.rs", "rust", rust)[0].member_fields == ["id", "owner"]
	assert models.detect("item.go", "go", go)[0].member_fields == ["ID", "Name"]
	assert models.detect("user.proto", "protobuf", proto)[0].member_fields == ["id", "name"]


def test_fields_when_declaration_consumes_the_brace():
	inline_proto = "message User { string id = 1; string name = 2; }\n"
	assert models.detect("user.proto", "protobuf", inline_proto)[0].member_fields == ["id", "name"]

	inline_gql = "type User { id: ID! name: String }\n"
	assert models.detect("schema.graphql", "graphql", inline_gql)[0].member_fields == ["id", "name"]

	gql = dedent(
		'''
		"""A customer order."""
		type Order @key(fields: "id") {
		  id: ID!
		  "line items"
		  items(first: Int = 10): [Item!]! @deprecated(reason: "use lines")
		  total: Float
		}

		enum Status {
		  OPEN
		  CLOSED
		}
		'''
	)
	found = _by_name(models.detect("schema.graphql", "graphql", gql))
	assert found["Order"].member_fields == ["id", "items", "total"]
	assert found["Status"].member_fields == ["OPEN", "CLOSED"]


def test_decorated_service():
	code = dedent(
		"""
		@Injectable()
		export class UsersService {
		  findAll() {
			return [];
		  }
		}
		"""
	)
	found = services.detect("src/users/users.service.ts", "typescript", code)
	assert [c.name for c in found] == ["UsersService"]
	assert found[0].metadata["detection"] == "decorator"
	assert found[0].metadata["decorator"] == "Injectable"


def test_directory_convention_service_with_signature():
	code = dedent(
		"""
		def create_user(data: UserCreate) -> User:
			return User(name=data.name)


		def _helper():
			pass
		"""
	)
	found = services.detect("src/services/user_service.py", "python", code)
	assert [c.name for c in found] == ["create_user"]
	assert found[0].metadata["detection"] == "directory_convention"
	assert found[0].consumes == ["UserCreate"]
	assert found[0].produces == ["User"]


def test_no_service_outside_service_dirs():
	code = "export class Helpers {}\n"
	assert services.detect("src/util/helpers.ts", "typescript", code) == []


def test_express_routes_skip_http_clients():
	code = dedent(
		"""
		router.get("/users", listUsers);
		app.post('/users/:id/activate', activate);
		axios.get("/external");
		"""
	)
	found = _by_name(transports.detect("src/routes.ts", "typescript", code))
	assert set(found) == {"GET /users", "POST /users/:id/activate"}
	assert found["GET /users"].metadata["handler"] == "listUsers"
	assert found["GET /users"].http_path == "/users"
	assert found["POST /users/:id/activate"].http_method == "POST"


def test_nest_controller_prefix_and_body():
	code = dedent(
		"""
		@Controller('users')
		export class UsersController {
		  @Get()
		  findAll() {
			return [];
		  }

		  @Post()
		  create(@Body() dto: CreateUserDto): Promise<User> {
			return this.usersService.create(dto);
		  }
		}
		"""
	)
	found = _by_name(transports.detect("src/users.controller.ts", "typescript", code))
	assert set(found) == {"GET /users", "POST /users"}
	create = found["POST /users"]
	assert create.metadata["handler"] == "create"
	assert create.consumes == ["CreateUserDto"]
	assert create.produces == ["User"]


def test_fastapi_route_payload():
	code = dedent(
		"""
		from fastapi import APIRouter, Depends

		router = APIRouter()


		@router.post("/messages", response_model=schemas.Message)
		def create_message(message: schemas.MessageCreate, db: Session = Depends(get_db)):
			return crud.create_message(db, message)


		@router.api_route("/ping", methods=["POST"])
		def ping():
			return {}
		"""
	)
	found = _by_name(transports.detect("app/api.py", "python", code))
	msg = found["POST /messages"]
	assert msg.consumes == ["MessageCreate"]
	assert msg.produces == ["Message"]
	assert msg.metadata["handler"] == "create_message"
	assert "POST /ping" in found


def test_spring_class_prefix():
	code = dedent(
		"""
		@RestController
		@RequestMapping("/api/orders")
		public class OrderController {

			@GetMapping("/{id}")
			public Order getOrder(@PathVariable Long id) {
				return service.find(id);
			}

			@PostMapping
			public Order create(@RequestBody OrderRequest request) {
				return service.create(request);
			}
		}
		"""
	)
	found = _by_name(transports.detect("src/OrderController.java", "java", code))
	assert set(found) == {"GET /api/orders/{id}", "POST /api/orders"}
	create = found["POST /api/orders"]
	assert create.consumes == ["OrderRequest"]
	assert create.produces == ["Order"]


def test_payload_stays_with_its_own_handler():
	py = dedent(
		"""
		@router.get("/health")
		def health():
			return {"ok": True}


		@router.post("/orders", response_model=Order)
		def create_order(order: OrderIn = Body(...)):
			return order
		"""
	)
	found = _by_name(transports.detect("app/api.py", "python", py))
	assert found["GET /health"].consumes is None
	assert found["GET /health"].produces is None
	assert found["POST /orders"].consumes == ["OrderIn"]
	assert found["POST /orders"].produces == ["Order"]

	ts = dedent(
		"""
		@Controller('users')
		export class UsersController {
		  @Get(':id')
		  findOne(@Param('id') id: string) {
			return this.usersService.findOne(id);
		  }

		  @Post()
		  create(
			@Body() dto: CreateUserDto,
		  ) {
			return this.usersService.create(dto);
		  }
		}
		"""
	)
	found = _by_name(transports.detect("src/users.controller.ts", "typescript", ts))
	assert found["GET /users/:id"].consumes is None
	assert found["POST /users"].consumes == ["CreateUserDto"]

	java = dedent(
		"""
		@RestController
		@RequestMapping("/users")
		public class UserController {
			@GetMapping("/{id}")
			public String get(@PathVariable Long id) {
				return "";
			}

			@PostMapping
			public String create(@RequestBody UserDto body) {
				return "";
			}
		}
		"""
	)
	found = _by_name(transports.detect("src/UserController.java", "java", java))
	assert found["GET /users/{id}"].consumes is None
	assert found["POST /users"].consumes == ["UserDto"]


def test_go_routes():
	code = dedent(
		"""
		package main

		func main() {
			http.HandleFunc("/health", healthHandler)
			r.GET("/items/:id", getItem)
			mux.HandleFunc("POST /orders", createOrder)
		}
		"""
	)
	names = {c.name for c in transports.detect("main.go", "go", code)}
	assert names == {"ANY /health", "GET /items/:id", "POST /orders"}


def test_grpc_service():
	code = dedent(
		"""
		syntax = "proto3";

		service UserService {
		  rpc GetUser (GetUserRequest) returns (User);
		  rpc ListUsers (ListUsersRequest) returns (stream User);
		}
		"""
	)
	(svc,) = transports.detect("api/user.proto", "protobuf", code)
	assert svc.name == "UserService"
	assert svc.transport_protocol == "grpc"
	assert svc.consumes == ["GetUserRequest", "ListUsersRequest"]
	assert svc.produces == ["User"]
	assert svc.metadata["rpcs"] == "GetUser,ListUsers"


def test_websocket_and_queue_transports():
	ws = dedent(
		"""
		io.on("connection", (socket) => {
		  socket.on("chat message", (msg) => {});
		});
		"""
	)
	names = {c.name for c in transports.detect("src/socket.ts", "typescript", ws)}
	assert names == {"ws:connection", "ws:chat message"}

	task = dedent(
		"""
		@shared_task
		def send_welcome_email(user_id):
			pass
		"""
	)
	(mq,) = transports.detect("app/tasks.py", "python", task)
	assert mq.name == "mq:send_welcome_email"
	assert mq.transport_protocol == "mq"
	assert mq.metadata["handler"] == "send_welcome_email"


def test_graphql_root_fields():
	code = dedent(
		"""
		type Query {
		  user(id: ID!): User
		  users: [User!]!
		}

		type User {
		  id: ID!
		  name: String
		}
		"""
	)
	found = _by_name(transports.detect("schema.graphql", "graphql", code))
	assert set(found) == {"Query.user", "Query.users"}
	assert found["Query.users"].produces == ["User"]
	assert found["Query.user"].metadata["root_type"] == "Query"
	assert [m.name for m in models.detect("schema.graphql", "graphql", code)] == ["User"]


def test_transforms_by_naming_and_trait():
	py = dedent(
		"""
		def to_dto(user):
			return UserDto(id=user.id)

		def from_row(row):
			pass

		def helper():
			pass
		"""
	)
	assert [c.name for c in transforms.detect("app/mappers.py", "python", py)] == ["to_dto", "from_row"]

	rust = dedent(
		"""
		impl From<UserRow> for User {
			fn from(row: UserRow) -> Self {
				User { id: row.id }
			}
		}
		"""
	)
	(trait,) = transforms.detect("src/convert.rs", "rust", rust)
	assert trait.name == "From<UserRow> for User"
	assert trait.metadata["trait"] == "From"

	java = dedent(
		"""
		public class UserMapper {
			public UserDto toDto(User u) {
				return new UserDto(u.getId());
			}

			public String toString() {
				return "mapper";
			}
		}
		"""
	)
	assert [c.name for c in transforms.detect("UserMapper.java", "java", java)] == ["toDto"]


def test_explicit_model_beats_directory_service():
	code = dedent(
		"""
		class User(BaseModel):
			id: int
		"""
	)
	found = detect_file("src/services/user.py", "python", code)
	assert [(c.kind, c.name) for c in found] == [("model", "User")]


def test_precedence_keeps_explicit_kinds_on_same_line():
	transport = CandidateComponent(name="GET /x", kind="transport", language="python", file="a.py", line_start=3)
	transform = CandidateComponent(
		name="to_x", kind="transform", language="python", file="a.py", line_start=3,
		metadata={"detection": "naming_convention"},
	)
	heuristic = CandidateComponent(
		name="to_x", kind="service", language="python", file="a.py", line_start=4,
		metadata={"detection": "directory_convention"},
	)
	kept = resolve_precedence([transport, transform, heuristic])
	assert [c.kind for c in kept] == ["transport", "transform"]


def test_normalize_types():
	assert normalize_types("list[schemas.Message] | None") == ["Message"]
	assert normalize_types("Promise<User[]>") == ["User"]
	assert normalize_types("Dict[str, Order]") == ["Order"]
	assert normalize_types("int") == []


def test_payload_from_body_param_and_injected_defaults():
	code = dedent(
		"""
		def create(item: Item = Body(...), db: Session = Depends(get_db)) -> ItemOut:
			return item
		"""
	)
	assert extract_payload_types(code, "python") == (["Item"], ["ItemOut"])
