"""
Shows what triggers each "Action ..." line in the log.

Run: python examples/demo.py   (writes log.txt in the current directory)
"""
#import logging; logging.getLogger('envtrace').setLevel(logging.DEBUG)

from envtrace import Tracer

CODE = '''
# WRITE: new key 'x' in _ENV
x = {"data": [1, 2, 3]}

# READ _ENV.x, WRITE new key 'mal' in _ENV.x (the lambda gets hooked)
x["mal"] = lambda a, b, c: a - b + c ** 2

# READ _ENV.print, HOOK CALL print("Hello")
print("Hello")

# READ _ENV.print, READ _ENV.str, HOOK CALL print(...)
print(str.replace("Hello", "H", "MM"))

# READ _ENV.x, READ _ENV.x.mal, HOOK CALL mal("Hello") -> TypeError
x["mal"]("Hello")

# READ _ENV.x, READ _ENV.x.mal, HOOK CALL mal(5, 1000, 8) -> -931
x["mal"](5, 1000, 8)
'''


def main():
    tracer = Tracer(log_file="log.txt")

    # First run: every print is prefixed with "==== "
    tracer.builtin_override("print", lambda *args: print("==== ", *args))
    tracer.run(CODE)
    tracer.builtin_restore("print")

    # Second run: calls whose first argument is "Hello" are not executed
    def veto(args, name, table):
        if args and args[0] == "Hello":
            print(f"Not executing function {name} with 1st argument 'Hello' from {table}")
            return False

    tracer.set_veto(veto)
    tracer.run(CODE)


if __name__ == "__main__":
    main()
