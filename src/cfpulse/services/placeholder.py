"""Generates minimal, stageable placeholder apps for each buildpack family."""

import re
import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional

from cfpulse.constants import DIR_MODE, FILE_MODE
from cfpulse.errors import PlaceholderError
from cfpulse.errors_catalog import actionable_error
from cfpulse.models import PlaceholderArtifact, RuntimeFamily, RuntimeIdentity

BLURB = "This app will be replaced with real source."


class BuildpackPlaceholderGenerator:
    """Writes the smallest source tree a buildpack can stage without extra dependencies.

    Every tree serves a trivial page using only the runtime's standard library,
    so staging never has to download packages.
    """

    def __init__(self, filesystem_service, logger, temp_root: Optional[str] = None):
        self.filesystem = filesystem_service
        self.logger = logger
        self.temp_root = temp_root
        self.builders: Dict[RuntimeFamily, Callable[[Path, str, str], None]] = {
            RuntimeFamily.JAVA: self._java,
            RuntimeFamily.NODEJS: self._nodejs,
            RuntimeFamily.PYTHON: self._python,
            RuntimeFamily.GO: self._go,
            RuntimeFamily.PHP: self._php,
            RuntimeFamily.RUBY: self._ruby,
            RuntimeFamily.STATIC: self._static,
        }

    @staticmethod
    def safe_name(app_name: str) -> str:
        return re.sub(r"[^A-Za-z0-9._-]+", "-", app_name).strip("-.") or "app"

    @staticmethod
    def slug(app_name: str) -> str:
        return re.sub(r"[^a-z0-9]+", "-", app_name.lower()).strip("-") or "app"

    def generate(self, app_name: str, runtime: RuntimeIdentity) -> PlaceholderArtifact:
        family = runtime.family
        if family is RuntimeFamily.STATIC and runtime.label.lower() not in ("static", "staticfile_buildpack"):
            self.logger.info("Unknown buildpack %s, falling back to static placeholder", runtime.label)

        title = self.safe_name(app_name)
        temp_dir = None
        try:
            temp_dir = tempfile.mkdtemp(prefix=f"cf-{family.value}-{title}-", dir=self.temp_root)
            root = Path(temp_dir)
            self.builders[family](root, title, self.slug(app_name))
            self.filesystem.set_tree_permissions(
                temp_dir,
                dir_mode=DIR_MODE,
                file_mode=FILE_MODE,
            )
        except OSError as exc:
            if temp_dir is not None:
                self.filesystem.cleanup_dir(temp_dir)
            raise PlaceholderError(
                f"{actionable_error('placeholder_failed', runtime=family.value, app=app_name)} "
                f"Cause: {exc}"
            ) from exc

        self.logger.debug("Created %s placeholder at: %s", family.value, temp_dir)
        return PlaceholderArtifact(path=root, app_name=app_name, runtime=runtime)

    def _java(self, root: Path, title: str, slug: str):
        # The Java buildpack stages any tree whose manifest declares a Main-Class.
        self.filesystem.write_file(
            root / "META-INF" / "MANIFEST.MF",
            """
Manifest-Version: 1.0
Main-Class: placeholder.PlaceholderApplication
""",
        )
        self.filesystem.write_file(
            root / "pom.xml",
            f"""
<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <modelVersion>4.0.0</modelVersion>
    <groupId>placeholder</groupId>
    <artifactId>{slug}</artifactId>
    <version>1.0.0</version>
    <packaging>jar</packaging>
    <properties>
        <maven.compiler.release>17</maven.compiler.release>
    </properties>
</project>
""",
        )
        self.filesystem.write_file(
            root / "src" / "main" / "java" / "placeholder" / "PlaceholderApplication.java",
            f"""
package placeholder;

import com.sun.net.httpserver.HttpServer;
import java.io.OutputStream;
import java.net.InetSocketAddress;
import java.nio.charset.StandardCharsets;

public class PlaceholderApplication {{
    public static void main(String[] args) throws Exception {{
        int port = Integer.parseInt(System.getenv().getOrDefault("PORT", "8080"));
        HttpServer server = HttpServer.create(new InetSocketAddress(port), 0);
        server.createContext("/", exchange -> {{
            byte[] body = "<h1>Placeholder for {title}</h1><p>{BLURB}</p>".getBytes(StandardCharsets.UTF_8);
            exchange.sendResponseHeaders(200, body.length);
            try (OutputStream out = exchange.getResponseBody()) {{
                out.write(body);
            }}
        }});
        server.start();
    }}
}}
""",
        )

    def _nodejs(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(
            root / "package.json",
            f"""
{{
  "name": "{slug}-placeholder",
  "version": "1.0.0",
  "private": true,
  "main": "server.js",
  "scripts": {{
    "start": "node server.js"
  }},
  "engines": {{
    "node": ">=18.0.0"
  }}
}}
""",
        )
        self.filesystem.write_file(
            root / "server.js",
            f"""
const http = require('http');
const port = process.env.PORT || 8080;

http.createServer((req, res) => {{
  res.writeHead(200, {{ 'Content-Type': 'text/html' }});
  res.end('<h1>Placeholder for {title}</h1><p>{BLURB}</p>');
}}).listen(port, () => {{
  console.log('Placeholder server running on port ' + port);
}});
""",
        )

    def _python(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(root / "requirements.txt", "")
        self.filesystem.write_file(root / "Procfile", "web: python app.py")
        self.filesystem.write_file(
            root / "app.py",
            f"""
import os
from http.server import BaseHTTPRequestHandler, HTTPServer

BODY = b"<h1>Placeholder for {title}</h1><p>{BLURB}</p>"


class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.send_header("Content-Length", str(len(BODY)))
        self.end_headers()
        self.wfile.write(BODY)


if __name__ == "__main__":
    HTTPServer(("0.0.0.0", int(os.environ.get("PORT", "8080"))), Handler).serve_forever()
""",
        )

    def _go(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(
            root / "go.mod",
            f"""
module example.com/{slug}-placeholder

go 1.21
""",
        )
        self.filesystem.write_file(
            root / "main.go",
            f"""
package main

import (
	"fmt"
	"net/http"
	"os"
)

func main() {{
	http.HandleFunc("/", func(w http.ResponseWriter, r *http.Request) {{
		fmt.Fprint(w, "<h1>Placeholder for {title}</h1><p>{BLURB}</p>")
	}})

	port := os.Getenv("PORT")
	if port == "" {{
		port = "8080"
	}}
	http.ListenAndServe(":"+port, nil)
}}
""",
        )

    def _php(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(
            root / "composer.json",
            f"""
{{
    "name": "placeholder/{slug}",
    "require": {{
        "php": ">=8.1"
    }}
}}
""",
        )
        self.filesystem.write_file(
            root / "index.php",
            f"""
<?php
echo "<h1>Placeholder for {title}</h1>";
echo "<p>{BLURB}</p>";
""",
        )

    def _ruby(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(root / "Gemfile", "source 'https://rubygems.org'")
        self.filesystem.write_file(
            root / "Gemfile.lock",
            """
GEM
  remote: https://rubygems.org/
  specs:

PLATFORMS
  ruby

DEPENDENCIES

BUNDLED WITH
   2.4.19
""",
        )
        self.filesystem.write_file(root / "Procfile", "web: ruby app.rb")
        self.filesystem.write_file(
            root / "app.rb",
            f"""
require 'socket'

body = "<h1>Placeholder for {title}</h1><p>{BLURB}</p>"
server = TCPServer.new('0.0.0.0', Integer(ENV.fetch('PORT', '8080')))

loop do
  client = server.accept
  client.gets
  client.print "HTTP/1.1 200 OK\\r\\nContent-Type: text/html\\r\\n" \\
               "Content-Length: #{{body.bytesize}}\\r\\nConnection: close\\r\\n\\r\\n#{{body}}"
  client.close
end
""",
        )

    def _static(self, root: Path, title: str, slug: str):
        self.filesystem.write_file(
            root / "index.html",
            f"""
<!DOCTYPE html>
<html>
<head><title>{title} - Placeholder</title></head>
<body>
    <h1>Placeholder for {title}</h1>
    <p>{BLURB}</p>
</body>
</html>
""",
        )
        self.filesystem.write_file(root / "Staticfile", "root: .")
