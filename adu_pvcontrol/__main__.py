from adu_pvcontrol.shell.cli import app

if __name__ == "__main__":
    app()
