# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

# NOTE: Development server only. Production runs through gunicorn.conf.py,
# which builds the same app via giveprotocol.create_app().

from giveprotocol import create_app

app = create_app()

if __name__ == "__main__":
    app.run("0.0.0.0", 8000, debug=app.config.get("DEBUG", False))
