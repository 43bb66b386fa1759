"""Recursive-descent parser for MiniC, one method per grammar production."""

from __future__ import annotations

from .ast import (
    Pos,
    TAddressOf,
    TArrayType,
    TAssignStmt,
    TBinaryOp,
    TBlock,
    TBreakStmt,
    TCall,
    TCast,
    TCharLit,
    TClassDecl,
    TClassType,
    TContinueStmt,
    TDecl,
    TDeref,
    TExpr,
    TExprStmt,
    TFieldAccess,
    TFunDecl,
    TIfStmt,
    TIndex,
    TIntLit,
    TLocalDecl,
    TMethodCall,
    TNew,
    TParam,
    TPointerType,
    TPrimitive,
    TProgram,
    TReturnStmt,
    TSizeOf,
    TStmt,
    TStringLit,
    TStructDecl,
    TStructType,
    TType,
    TUnaryOp,
    TVar,
    TVarDecl,
    TWhileStmt,
)
from .errors import MinicError
from .tokens import (
    TK_CHAR,
    TK_EOF,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_STRING,
    Token,
)

COMPARE_OPS: set[str] = {"<", "<=", ">", ">="}

PRIMITIVE_TYPES: set[str] = {"int", "char", "void"}

TYPE_KEYWORDS: set[str] = {"int", "char", "void", "struct", "class"}


class ParseError(MinicError):
    """Parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        super().__init__(msg, Pos(line, col))
        self.line: int = line
        self.col: int = col


class Parser:
    """Recursive descent parser for MiniC."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.value == value and tok.type not in (TK_STRING, TK_CHAR)

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_ident(self) -> bool:
        return self.current().type == TK_IDENT

    def expect(self, value: str) -> Token:
        if not self.at(value):
            raise self.error("expected '" + value + "', got '" + self.current().value + "'")
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected identifier, got '" + tok.value + "'")
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> TProgram:
        decls: list[TDecl] = []
        while not self.at_type(TK_EOF):
            decls.append(self.parse_decl())
        return TProgram(decls)

    def parse_decl(self) -> TDecl:
        """Decl = StructDecl | ClassDecl | VarDecl | FunDecl"""
        if self.at("struct") and self.peek(1).type == TK_IDENT and self.peek(2).value == "{":
            return self.parse_struct_decl()
        if self.at("class") and self.peek(1).type == TK_IDENT and (
            self.peek(2).value == "{" or self.peek(2).value == "extends"
        ):
            return self.parse_class_decl()
        pos = self._pos()
        typ = self.parse_type()
        name_tok = self.expect_ident()
        if self.at("("):
            return self.parse_fun_rest(pos, typ, name_tok.value, allow_prototype=True)
        return self.parse_var_rest(pos, typ, name_tok.value)

    def parse_var_rest(self, pos: Pos, typ: TType, name: str) -> TVarDecl:
        """VarDecl tail = ( '[' INT ']' )* ';'"""
        typ = self.parse_dims(typ)
        self.expect(";")
        return TVarDecl(pos, name, typ)

    def parse_dims(self, typ: TType) -> TType:
        sizes: list[tuple[Pos, int]] = []
        while self.at("["):
            pos = self._pos()
            self.advance()
            tok = self.current()
            if tok.type != TK_INT:
                raise self.error("array size must be an integer literal")
            self.advance()
            size = int(tok.value)
            if size <= 0:
                raise ParseError("array size must be positive", tok.line, tok.col)
            self.expect("]")
            sizes.append((pos, size))
        for dim_pos, size in reversed(sizes):
            typ = TArrayType(dim_pos, typ, size)
        return typ

    def parse_fun_rest(
        self, pos: Pos, ret: TType, name: str, allow_prototype: bool
    ) -> TFunDecl:
        """FunDecl tail = '(' Params ')' ( ';' | Block )"""
        self.expect("(")
        params = self.parse_param_list()
        self.expect(")")
        if allow_prototype and self.at(";"):
            self.advance()
            return TFunDecl(pos, name, params, ret, None)
        body = self.parse_block()
        return TFunDecl(pos, name, params, ret, body)

    def parse_param_list(self) -> list[TParam]:
        """Params = ( Param ( ',' Param )* )? | 'void'"""
        params: list[TParam] = []
        if self.at(")"):
            return params
        if self.at("void") and self.peek(1).value == ")":
            self.advance()
            return params
        params.append(self.parse_param())
        while self.at(","):
            self.advance()
            params.append(self.parse_param())
        return params

    def parse_param(self) -> TParam:
        pos = self._pos()
        typ = self.parse_type()
        name_tok = self.expect_ident()
        typ = self.parse_dims(typ)
        return TParam(pos, name_tok.value, typ)

    def parse_struct_decl(self) -> TStructDecl:
        """StructDecl = 'struct' IDENT '{' VarDecl+ '}' ';'"""
        pos = self._pos()
        self.expect("struct")
        name_tok = self.expect_ident()
        self.expect("{")
        fields: list[TVarDecl] = []
        while not self.at("}"):
            field_pos = self._pos()
            typ = self.parse_type()
            field_name = self.expect_ident()
            fields.append(self.parse_var_rest(field_pos, typ, field_name.value))
        self.expect("}")
        self.expect(";")
        if not fields:
            raise ParseError("struct must have at least one field", pos.line, pos.col)
        return TStructDecl(pos, name_tok.value, fields)

    def parse_class_decl(self) -> TClassDecl:
        """ClassDecl = 'class' IDENT ( 'extends' IDENT )? '{' Member* '}' ';'?"""
        pos = self._pos()
        self.expect("class")
        name_tok = self.expect_ident()
        parent: str | None = None
        if self.at("extends"):
            self.advance()
            parent = self.expect_ident().value
        self.expect("{")
        fields: list[TVarDecl] = []
        methods: list[TFunDecl] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("unterminated class body")
            member_pos = self._pos()
            typ = self.parse_type()
            member_name = self.expect_ident()
            if self.at("("):
                methods.append(
                    self.parse_fun_rest(member_pos, typ, member_name.value, allow_prototype=False)
                )
            else:
                fields.append(self.parse_var_rest(member_pos, typ, member_name.value))
        self.expect("}")
        if self.at(";"):
            self.advance()
        return TClassDecl(pos, name_tok.value, parent, fields, methods)

    # ── Types ────────────────────────────────────────────────

    def parse_type(self) -> TType:
        """Type = BaseType '*'*"""
        typ = self.parse_base_type()
        while self.at("*"):
            pos = self._pos()
            self.advance()
            typ = TPointerType(pos, typ)
        return typ

    def parse_base_type(self) -> TType:
        pos = self._pos()
        tok = self.current()
        if tok.value in PRIMITIVE_TYPES and tok.type == tok.value:
            self.advance()
            return TPrimitive(pos, tok.value)
        if self.at("struct"):
            self.advance()
            return TStructType(pos, self.expect_ident().value)
        if self.at("class"):
            self.advance()
            return TClassType(pos, self.expect_ident().value)
        if tok.type == TK_IDENT:
            self.advance()
            return TClassType(pos, tok.value)
        raise self.error("expected type, got '" + tok.value + "'")

    def _at_type_keyword(self) -> bool:
        tok = self.current()
        return tok.value in TYPE_KEYWORDS and tok.type == tok.value

    def _at_local_decl(self) -> bool:
        """Type keyword, or a bare class name followed by a declarator."""
        if self._at_type_keyword():
            return True
        if not self.at_ident():
            return False
        i = 1
        while self.peek(i).value == "*" and self.peek(i).type == TK_OP:
            i += 1
        if self.peek(i).type != TK_IDENT:
            return False
        if i == 1:
            return True
        after = self.peek(i + 1).value
        return after == ";" or after == "["

    # ── Statements ───────────────────────────────────────────

    def parse_block(self) -> TBlock:
        """Block = '{' ( LocalDecl | Stmt )* '}'"""
        pos = self._pos()
        self.expect("{")
        stmts: list[TStmt] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("unterminated block")
            if self._at_local_decl():
                stmts.append(self.parse_local_decl())
            else:
                stmts.append(self.parse_stmt())
        self.expect("}")
        return TBlock(pos, stmts)

    def parse_local_decl(self) -> TLocalDecl:
        pos = self._pos()
        typ = self.parse_type()
        name_tok = self.expect_ident()
        typ = self.parse_dims(typ)
        self.expect(";")
        return TLocalDecl(pos, name_tok.value, typ)

    def parse_stmt(self) -> TStmt:
        tok = self.current()
        if tok.type == TK_OP and tok.value == "{":
            return self.parse_block()
        if tok.type == "if":
            return self.parse_if_stmt()
        if tok.type == "while":
            return self.parse_while_stmt()
        if tok.type == "return":
            return self.parse_return_stmt()
        if tok.type == "break":
            pos = self._pos()
            self.advance()
            self.expect(";")
            return TBreakStmt(pos)
        if tok.type == "continue":
            pos = self._pos()
            self.advance()
            self.expect(";")
            return TContinueStmt(pos)
        return self.parse_expr_stmt()

    def parse_if_stmt(self) -> TIfStmt:
        pos = self._pos()
        self.expect("if")
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        then_body = self.parse_stmt()
        else_body: TStmt | None = None
        if self.at("else"):
            self.advance()
            else_body = self.parse_stmt()
        return TIfStmt(pos, cond, then_body, else_body)

    def parse_while_stmt(self) -> TWhileStmt:
        pos = self._pos()
        self.expect("while")
        self.expect("(")
        cond = self.parse_expr()
        self.expect(")")
        body = self.parse_stmt()
        return TWhileStmt(pos, cond, body)

    def parse_return_stmt(self) -> TReturnStmt:
        pos = self._pos()
        self.expect("return")
        value: TExpr | None = None
        if not self.at(";"):
            value = self.parse_expr()
        self.expect(";")
        return TReturnStmt(pos, value)

    def parse_expr_stmt(self) -> TStmt:
        """ExprStmt = Expr ( '=' Expr )? ';'"""
        pos = self._pos()
        expr = self.parse_expr()
        if self.at("="):
            self.advance()
            value = self.parse_expr()
            self.expect(";")
            return TAssignStmt(pos, expr, value)
        self.expect(";")
        return TExprStmt(pos, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> TExpr:
        return self.parse_or()

    def parse_or(self) -> TExpr:
        """Or = And ( '||' And )*"""
        left = self.parse_and()
        while self.at("||"):
            self.advance()
            right = self.parse_and()
            left = TBinaryOp(left.pos, "||", left, right)
        return left

    def parse_and(self) -> TExpr:
        """And = Equality ( '&&' Equality )*"""
        left = self.parse_equality()
        while self.at("&&"):
            self.advance()
            right = self.parse_equality()
            left = TBinaryOp(left.pos, "&&", left, right)
        return left

    def parse_equality(self) -> TExpr:
        """Equality = Relational ( ( '==' | '!=' ) Relational )*"""
        left = self.parse_relational()
        while self.at("==") or self.at("!="):
            op = self.advance().value
            right = self.parse_relational()
            left = TBinaryOp(left.pos, op, left, right)
        return left

    def parse_relational(self) -> TExpr:
        """Relational = Sum ( CompOp Sum )*"""
        left = self.parse_sum()
        while self.current().type == TK_OP and self.current().value in COMPARE_OPS:
            op = self.advance().value
            right = self.parse_sum()
            left = TBinaryOp(left.pos, op, left, right)
        return left

    def parse_sum(self) -> TExpr:
        """Sum = Product ( ( '+' | '-' ) Product )*"""
        left = self.parse_product()
        while self.at("+") or self.at("-"):
            op = self.advance().value
            right = self.parse_product()
            left = TBinaryOp(left.pos, op, left, right)
        return left

    def parse_product(self) -> TExpr:
        """Product = Unary ( ( '*' | '/' | '%' ) Unary )*"""
        left = self.parse_unary()
        while self.at("*") or self.at("/") or self.at("%"):
            op = self.advance().value
            right = self.parse_unary()
            left = TBinaryOp(left.pos, op, left, right)
        return left

    def parse_unary(self) -> TExpr:
        """Unary = ( '-' | '!' | '*' | '&' ) Unary | Cast | SizeOf | Postfix"""
        pos = self._pos()
        if self.at("-") or self.at("!"):
            op = self.advance().value
            operand = self.parse_unary()
            return TUnaryOp(pos, op, operand)
        if self.at("*"):
            self.advance()
            return TDeref(pos, self.parse_unary())
        if self.at("&"):
            self.advance()
            return TAddressOf(pos, self.parse_unary())
        if self.at("(") and self.peek(1).type in TYPE_KEYWORDS:
            self.advance()
            typ = self.parse_type()
            typ = self.parse_dims(typ)
            self.expect(")")
            return TCast(pos, typ, self.parse_unary())
        if self.at("sizeof"):
            self.advance()
            self.expect("(")
            target: TType | TExpr
            if self._at_type_keyword():
                target = self.parse_dims(self.parse_type())
            else:
                target = self.parse_expr()
            self.expect(")")
            return TSizeOf(pos, target)
        return self.parse_postfix()

    def parse_postfix(self) -> TExpr:
        """Postfix = Primary ( '.' IDENT Args? | '->' IDENT Args? | '[' Expr ']' )*"""
        expr = self.parse_primary()
        while True:
            if self.at(".") or self.at("->"):
                arrow = self.advance().value == "->"
                name_tok = self.expect_ident()
                obj: TExpr = TDeref(expr.pos, expr) if arrow else expr
                if self.at("("):
                    self.advance()
                    args = self.parse_arg_list()
                    self.expect(")")
                    expr = TMethodCall(expr.pos, obj, name_tok.value, args)
                else:
                    expr = TFieldAccess(expr.pos, obj, name_tok.value)
            elif self.at("["):
                self.advance()
                index = self.parse_expr()
                self.expect("]")
                expr = TIndex(expr.pos, expr, index)
            elif self.at("("):
                if not isinstance(expr, TVar):
                    raise self.error("only named functions can be called")
                self.advance()
                args = self.parse_arg_list()
                self.expect(")")
                expr = TCall(expr.pos, expr.name, args)
            else:
                break
        return expr

    def parse_arg_list(self) -> list[TExpr]:
        """ArgList = ( Expr ( ',' Expr )* )?"""
        args: list[TExpr] = []
        if self.at(")"):
            return args
        args.append(self.parse_expr())
        while self.at(","):
            self.advance()
            args.append(self.parse_expr())
        return args

    def parse_primary(self) -> TExpr:
        """Parse a primary expression."""
        tok = self.current()
        pos = self._pos()

        if tok.type == TK_INT:
            self.advance()
            return TIntLit(pos, int(tok.value))
        if tok.type == TK_CHAR:
            self.advance()
            return TCharLit(pos, tok.value)
        if tok.type == TK_STRING:
            self.advance()
            return TStringLit(pos, tok.value)
        if tok.type == TK_IDENT:
            self.advance()
            return TVar(pos, tok.value)
        if tok.type == "new":
            self.advance()
            if self.at("class"):
                self.advance()
            name_tok = self.expect_ident()
            self.expect("(")
            self.expect(")")
            return TNew(pos, name_tok.value)
        if self.at("("):
            self.advance()
            expr = self.parse_expr()
            self.expect(")")
            return expr
        raise self.error("unexpected token '" + tok.value + "'")
