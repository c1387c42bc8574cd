from textwrap import dedent

from archmap.model import Edge
from archmap.pipeline import scan_sources
from archmap.relationships import file_stems, merge_edges


def _named(doc):
	return {c.name: c for c in doc.components}


def _edge(doc, src, dst):
	for e in doc.edges:
		if e.from_id == src.id and e.to_id == dst.id:
			return e
	return None


def test_merge_edges_unions_labels_and_is_idempotent():
	edges = [
		Edge(from_id="a", to_id="b", label=["imports"]),
		Edge(from_id="a", to_id="b", label=["persists"]),
		Edge(from_id="b", to_id="a", label=["calls"]),
		Edge(from_id="a", to_id="b", label=["consumes"], payload_type="Order"),
		Edge(from_id="a", to_id="b", label=["imports"], payload_type="Other"),
	]
	merged = merge_edges(edges)
	assert [(e.from_id, e.to_id) for e in merged] == [("a", "b"), ("b", "a")]
	assert merged[0].label == ["imports", "persists", "consumes"]
	assert merged[0].payload_type == "Order"
	again = merge_edges(merged)
	assert [e.model_dump() for e in again] == [e.model_dump() for e in merged]


def test_file_stems():
	assert file_stems("src/models/user.model.ts") == ["user.model", "user"]
	assert "users" in file_stems("src/users/index.ts")


def test_handles_only_from_enclosing_service():
	code = dedent(
		"""
		@Controller('users')
		export class UsersController {
		  @Get()
		  findAll() {
			return [];
		  }
		}

		@Injectable()
		export class AuditService {
		  log() {}
		}
		"""
	)
	doc = scan_sources([("src/users.controller.ts", code)])
	named = _named(doc)
	route = named["GET /users"]
	handles = [e for e in doc.edges if "handles" in e.label]
	assert len(handles) == 1
	assert handles[0].from_id == named["UsersController"].id
	assert handles[0].to_id == route.id


def test_transport_persists_model_it_mentions():
	models = "export interface Order { id; total }\n"
	routes = dedent(
		"""
		router.post("/orders", async (req, res) => {
		  const order: Order = await repo.save(req.body);
		  res.json(order);
		});
		"""
	)
	doc = scan_sources([("src/models/order.ts", models), ("src/routes/orders.ts", routes)])
	named = _named(doc)
	edge = _edge(doc, named["POST /orders"], named["Order"])
	assert edge is not None
	assert "persists" in edge.label
	assert "references" in edge.label


def test_path_braces_do_not_stretch_route_body():
	order = "public record Order(Long id, double total) {}\n"
	controller = dedent(
		"""
		@RestController
		public class PingController {
			@GetMapping("/ping/{id}")
			public String ping(@PathVariable String id) {
				return id;
			}

			@GetMapping("/orders")
			public List<Order> orders() {
				return repository.findAll();
			}
		}
		"""
	)
	doc = scan_sources([("src/Order.java", order), ("src/PingController.java", controller)])
	named = _named(doc)
	ping = named["GET /ping/{id}"]
	assert (ping.source.line_start, ping.source.line_end) == (4, 7)
	assert _edge(doc, ping, named["Order"]) is None
	assert _edge(doc, named["GET /orders"], named["Order"]) is not None


def test_imports_resolve_by_file_stem():
	types = "export interface Invoice { id; amount }\n"
	svc = dedent(
		"""
		import { Invoice } from "../types/invoice";

		export class BillingService {
		  total(items) {
			return items.length;
		  }
		}
		"""
	)
	doc = scan_sources([("src/types/invoice.ts", types), ("src/services/billing.ts", svc)])
	named = _named(doc)
	edge = _edge(doc, named["BillingService"], named["Invoice"])
	assert edge is not None
	assert edge.label[0] == "imports"


def test_service_calls_service():
	order = dedent(
		"""
		export class OrderService {
		  constructor(private readonly paymentService: PaymentService) {}

		  checkout() {
			return this.paymentService.charge();
		  }
		}
		"""
	)
	payment = dedent(
		"""
		export class PaymentService {
		  charge() {
			return true;
		  }
		}
		"""
	)
	doc = scan_sources([("src/services/order.service.ts", order), ("src/services/payment.service.ts", payment)])
	named = _named(doc)
	edge = _edge(doc, named["OrderService"], named["PaymentService"])
	assert edge is not None
	assert "calls" in edge.label
	assert _edge(doc, named["PaymentService"], named["OrderService"]) is None


def test_dispatch_wins_over_call():
	tasks = dedent(
		"""
		@shared_task
		def send_welcome_email(user_id):
			pass
		"""
	)
	signup = dedent(
		"""
		from app.tasks import send_welcome_email


		def register_user(data):
			send_welcome_email.delay(42)
		"""
	)
	doc = scan_sources([("app/tasks.py", tasks), ("app/services/signup.py", signup)])
	named = _named(doc)
	edge = _edge(doc, named["register_user"], named["mq:send_welcome_email"])
	assert edge is not None
	assert "dispatches" in edge.label
	assert "calls" not in edge.label


def test_payload_edges_carry_type():
	schemas = dedent(
		"""
		from pydantic import BaseModel


		class Message(BaseModel):
			id: int
			text: str


		class MessageCreate(BaseModel):
			text: str
		"""
	)
	api = dedent(
		"""
		from . import schemas


		@router.post("/messages", response_model=schemas.Message)
		def create_message(message: schemas.MessageCreate):
			return message
		"""
	)
	doc = scan_sources([("app/schemas.py", schemas), ("app/main.py", api)])
	named = _named(doc)
	route = named["POST /messages"]
	consumed = _edge(doc, named["MessageCreate"], route)
	assert consumed.label == ["consumes"]
	assert consumed.payload_type == "MessageCreate"
	produced = _edge(doc, route, named["Message"])
	assert "produces" in produced.label
	assert produced.payload_type == "Message"


def test_no_self_edges():
	code = dedent(
		"""
		export class UserService {
		  find() {
			return new UserService();
		  }
		}
		"""
	)
	doc = scan_sources([("src/services/user.service.ts", code)])
	assert all(e.from_id != e.to_id for e in doc.edges)
