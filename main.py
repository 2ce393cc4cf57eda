from rich.pretty import pprint

from conductor import *

app = Cli("conductor", "0.0.0", "Demo application", colorful=True)


@app.command(options=[Option("shout", "s", "use capital letters", flag=True)])
def hello(command: Command, named: NamedParameters):
    """Greet the configured audience."""
    greeting = "hello %s" % named.get("audience", "world")
    print(greeting.upper() if command.value("shout") else greeting)


app.register_named("audience", "conductor")


if __name__ == '__main__':
    pprint(app)
    raise SystemExit(app.run())
