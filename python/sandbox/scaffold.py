# sandbox/scaffold.py - starter projects written into a fresh sandbox
import json

VITE_PACKAGE_JSON = json.dumps({
    "name": "sandbox-app",
    "version": "1.0.0",
    "type": "module",
    "scripts": {
        "dev": "vite --host 0.0.0.0 --port 5173 --strictPort",
        "build": "vite build",
        "preview": "vite preview",
    },
    "dependencies": {"react": "^18.2.0", "react-dom": "^18.2.0"},
    "devDependencies": {
        "@vitejs/plugin-react": "^4.3.0",
        "vite": "^5.4.0",
        "tailwindcss": "^3.3.0",
        "postcss": "^8.4.31",
        "autoprefixer": "^10.4.16",
    },
}, indent=2)

VITE_CONFIG = """import { defineConfig } from 'vite'
import react from '@vitejs/plugin-react'

export default defineConfig({
  plugins: [react()],
  server: {
    host: '0.0.0.0',
    port: 5173,
    strictPort: true,
    hmr: false,
    allowedHosts: ['.e2b.app', '.e2b.dev', 'localhost', '127.0.0.1']
  }
})"""

TAILWIND_CONFIG = """/** @type {import('tailwindcss').Config} */
export default {
  content: [
    "./index.html",
    "./src/**/*.{js,ts,jsx,tsx}",
  ],
  theme: {
    extend: {},
  },
  plugins: [],
}"""

POSTCSS_CONFIG = """export default {
  plugins: {
    tailwindcss: {},
    autoprefixer: {},
  },
}"""

VITE_INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Sandbox App</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.jsx"></script>
  </body>
</html>"""

VITE_MAIN_JSX = """import React from 'react'
import ReactDOM from 'react-dom/client'
import App from './App.jsx'
import './index.css'

ReactDOM.createRoot(document.getElementById('root')).render(
  <React.StrictMode>
    <App />
  </React.StrictMode>,
)"""

VITE_APP_JSX = """function App() {
  return (
    <div className="min-h-screen bg-gray-900 text-white flex items-center justify-center p-4">
      <div className="text-center max-w-2xl">
        <p className="text-lg text-gray-400">
          Sandbox Ready<br/>
          Start building your React app with Vite and Tailwind CSS!
        </p>
      </div>
    </div>
  )
}

export default App"""

VITE_INDEX_CSS = """@tailwind base;
@tailwind components;
@tailwind utilities;

body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Oxygen, Ubuntu, sans-serif;
  background-color: rgb(17 24 39);
}"""

# Bun snapshot: dependencies are preinstalled, Tailwind v4 import syntax
BUN_INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Sandbox App</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/index.tsx"></script>
  </body>
</html>"""

BUN_INDEX_TSX = """import React from 'react'
import ReactDOM from 'react-dom/client'
import App from './App'
import './index.css'

ReactDOM.createRoot(document.getElementById('root')!).render(
  <React.StrictMode>
    <App />
  </React.StrictMode>,
)"""

BUN_APP_TSX = """function App() {
  return (
    <div className="min-h-screen bg-white flex items-center justify-center text-gray-900">
      <div className="text-center space-y-3">
        <p className="text-xs uppercase tracking-widest font-semibold">Workspace ready</p>
        <h1 className="text-3xl sm:text-4xl font-normal text-gray-800">Ready to build</h1>
        <p className="text-sm text-gray-600 italic">You can start describing what you want to create.</p>
      </div>
    </div>
  )
}

export default App"""

BUN_INDEX_CSS = """@import "tailwindcss";

@layer base {
  body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Oxygen, Ubuntu, sans-serif;
    -webkit-font-smoothing: antialiased;
    background-color: #ffffff;
  }
}"""


def vite_starter_files():
    return {
        "package.json": VITE_PACKAGE_JSON,
        "vite.config.js": VITE_CONFIG,
        "tailwind.config.js": TAILWIND_CONFIG,
        "postcss.config.js": POSTCSS_CONFIG,
        "index.html": VITE_INDEX_HTML,
        "src/main.jsx": VITE_MAIN_JSX,
        "src/App.jsx": VITE_APP_JSX,
        "src/index.css": VITE_INDEX_CSS,
    }


def bun_starter_files():
    return {
        "index.html": BUN_INDEX_HTML,
        "src/index.tsx": BUN_INDEX_TSX,
        "src/App.tsx": BUN_APP_TSX,
        "src/index.css": BUN_INDEX_CSS,
    }
