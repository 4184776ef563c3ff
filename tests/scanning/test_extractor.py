"""Tests for import and declaration extraction."""

from solsift.scanning import DeclarationKind, MemberKind


class TestImports:
    def test_plain_import(self, load_source):
        (statement,) = load_source('import "./A.sol";').imports
        assert statement.path == "./A.sol"
        assert statement.unit_alias is None
        assert statement.symbols == ()

    def test_unit_alias(self, load_source):
        (statement,) = load_source('import "./A.sol" as U;').imports
        assert statement.unit_alias == "U"

    def test_star_alias(self, load_source):
        (statement,) = load_source('import * as U from "./A.sol";').imports
        assert statement.unit_alias == "U"

    def test_symbol_aliases(self, load_source):
        (statement,) = load_source('import {A, B as C} from "./A.sol";').imports
        assert [(s.name, s.local_name) for s in statement.symbols] == [("A", "A"), ("B", "C")]
        assert statement.unit_alias is None

    def test_import_span(self, load_source):
        imports = load_source('pragma solidity 0.8.20;\nimport "./A.sol";\n').imports
        assert imports[0].span.start.line == 2


class TestDeclarations:
    """Outline extraction for contracts and their members."""

    SOURCE = """
    struct Global { uint a; }
    error Failed();
    function helper() pure returns (uint) { return 1; }

    interface IToken { function transfer(address to, uint amount) external returns (bool); }

    abstract contract Base is IToken {
        uint256 public constant FEE = 1;
        address immutable owner;
        struct Position { uint size; }
        event Moved(address indexed who);

        modifier onlyOwner() { _; }
        constructor() { owner = msg.sender; }
        function transfer(address to, uint amount) external virtual override returns (bool);
        receive() external payable {}
    }

    library Math {}
    """

    def test_kinds_and_scopes(self, load_source):
        declarations = load_source(self.SOURCE).declarations
        summary = [(d.kind, d.qualified_name) for d in declarations]
        assert (DeclarationKind.STRUCT, "Global") in summary
        assert (DeclarationKind.ERROR, "Failed") in summary
        assert (DeclarationKind.FUNCTION, "helper") in summary
        assert (DeclarationKind.INTERFACE, "IToken") in summary
        assert (DeclarationKind.CONTRACT, "Base") in summary
        assert (DeclarationKind.STRUCT, "Base.Position") in summary
        assert (DeclarationKind.EVENT, "Base.Moved") in summary
        assert (DeclarationKind.LIBRARY, "Math") in summary

    def test_bases_and_abstract(self, load_source):
        base = next(d for d in load_source(self.SOURCE).declarations if d.name == "Base")
        assert base.bases == ("IToken",)
        assert base.is_abstract

    def test_members(self, load_source):
        base = next(d for d in load_source(self.SOURCE).declarations if d.name == "Base")
        kinds = {m.name: m.kind for m in base.members}
        assert kinds["FEE"] is MemberKind.STATE_VARIABLE
        assert kinds["onlyOwner"] is MemberKind.MODIFIER
        assert kinds["constructor"] is MemberKind.CONSTRUCTOR
        assert kinds["transfer"] is MemberKind.FUNCTION
        assert kinds["receive"] is MemberKind.RECEIVE

    def test_state_variable_flags(self, load_source):
        base = next(d for d in load_source(self.SOURCE).declarations if d.name == "Base")
        fee = base.member_named("FEE")
        owner = base.member_named("owner")
        assert fee.is_constant and fee.visibility == "public"
        assert fee.type_name == "uint256"
        assert owner.is_immutable and owner.visibility is None

    def test_function_signature_normalizes_aliases(self, load_source):
        base = next(d for d in load_source(self.SOURCE).declarations if d.name == "Base")
        transfer = base.member_named("transfer")
        assert transfer.parameter_types == ("address", "uint256")
        assert transfer.is_virtual
        assert transfer.overrides
        assert not transfer.has_body

    def test_qualified_base_name(self, load_source):
        source = load_source('import "./A.sol" as U;\ncontract C is U.Base {}\n')
        contract = next(d for d in source.declarations if d.name == "C")
        assert contract.bases == ("U.Base",)
