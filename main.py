from rich.pretty import pprint

from argosy import *


@command(shell=True, fancy=True, colorful=True, helper=pprint)
@helper
class Serve:
    port: int = Option("-p|--port", "port to listen on", default=8080)
    bind: str = Option("-b|--bind <ADDRESS>", "address to bind", default="127.0.0.1")
    verbose: list[bool] = Option("-v", "more output (repeatable)")
    roots: list[str] = Argument(0, descr="directories to serve", required=True)


if __name__ == '__main__':
    pprint(invoke(Serve))
